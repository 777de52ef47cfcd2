"""
Centralized configuration with environment variable overrides.

Scoring constants, prediction thresholds, and session lifetimes are
configurable here. Nothing is hardcoded in the conversation core.
"""

import logging
import os
from dataclasses import dataclass, field

from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)


def _safe_int(env_var: str, default: str) -> int:
    """Parse an integer from an env var with a clear error on bad values."""
    raw = os.getenv(env_var, default)
    try:
        return int(raw)
    except (ValueError, TypeError):
        raise ValueError(
            f"Invalid integer for {env_var}: {raw!r}"
        ) from None


def _safe_float(env_var: str, default: str) -> float:
    """Parse a float from an env var with a clear error on bad values."""
    raw = os.getenv(env_var, default)
    try:
        return float(raw)
    except (ValueError, TypeError):
        raise ValueError(
            f"Invalid float for {env_var}: {raw!r}"
        ) from None


@dataclass(frozen=True)
class AssistantConfig:
    """Customer-facing settings for the support assistant."""

    currency: str = os.getenv("CURRENCY", "THB")
    default_customer_id: str = os.getenv("DEFAULT_CUSTOMER_ID", "user123")
    statement_window_days: int = _safe_int("STATEMENT_WINDOW_DAYS", "30")
    statement_preview_count: int = _safe_int("STATEMENT_PREVIEW_COUNT", "3")


@dataclass(frozen=True)
class ClassifierConfig:
    """Keyword scoring weights for the intent classifier."""

    confidence_threshold: float = _safe_float("CONFIDENCE_THRESHOLD", "0.3")
    base_weight: float = _safe_float("TRIGGER_BASE_WEIGHT", "0.3")
    long_trigger_bonus: float = _safe_float("LONG_TRIGGER_BONUS", "0.1")
    long_trigger_length: int = _safe_int("LONG_TRIGGER_LENGTH", "6")
    phrase_bonus: float = _safe_float("PHRASE_BONUS", "0.2")


@dataclass(frozen=True)
class PredictionConfig:
    """Thresholds for proactive suggestions."""

    duplicate_amount_tolerance: float = _safe_float("DUPLICATE_AMOUNT_TOLERANCE", "15")
    duplicate_window_hours: int = _safe_int("DUPLICATE_WINDOW_HOURS", "48")
    due_soon_days: int = _safe_int("DUE_SOON_DAYS", "3")
    high_usage_ratio: float = _safe_float("HIGH_USAGE_RATIO", "0.75")


@dataclass(frozen=True)
class SessionConfig:
    """Idle expiry for memory-resident sessions."""

    idle_timeout_minutes: int = _safe_int("SESSION_IDLE_TIMEOUT_MINUTES", "30")
    sweep_interval_minutes: int = _safe_int("SESSION_SWEEP_INTERVAL_MINUTES", "10")


@dataclass(frozen=True)
class AppConfig:
    """Root configuration aggregating all sub-configs."""

    assistant: AssistantConfig = field(default_factory=AssistantConfig)
    classifier: ClassifierConfig = field(default_factory=ClassifierConfig)
    prediction: PredictionConfig = field(default_factory=PredictionConfig)
    sessions: SessionConfig = field(default_factory=SessionConfig)
    log_level: str = os.getenv("LOG_LEVEL", "INFO")


def _validate_config(config: AppConfig) -> None:
    """Validate configuration values are within acceptable ranges."""
    for name, value in [
        ("CONFIDENCE_THRESHOLD", config.classifier.confidence_threshold),
        ("TRIGGER_BASE_WEIGHT", config.classifier.base_weight),
        ("LONG_TRIGGER_BONUS", config.classifier.long_trigger_bonus),
        ("PHRASE_BONUS", config.classifier.phrase_bonus),
        ("HIGH_USAGE_RATIO", config.prediction.high_usage_ratio),
    ]:
        if not 0.0 <= value <= 1.0:
            raise ValueError(f"{name} must be between 0.0 and 1.0, got {value}")

    if config.classifier.long_trigger_length < 1:
        raise ValueError(
            f"LONG_TRIGGER_LENGTH must be >= 1, got {config.classifier.long_trigger_length}"
        )
    if config.prediction.duplicate_amount_tolerance < 0:
        raise ValueError(
            "DUPLICATE_AMOUNT_TOLERANCE must be >= 0, "
            f"got {config.prediction.duplicate_amount_tolerance}"
        )
    if config.prediction.duplicate_window_hours < 1:
        raise ValueError(
            f"DUPLICATE_WINDOW_HOURS must be >= 1, got {config.prediction.duplicate_window_hours}"
        )
    if config.prediction.due_soon_days < 0:
        raise ValueError(f"DUE_SOON_DAYS must be >= 0, got {config.prediction.due_soon_days}")
    if config.sessions.idle_timeout_minutes < 1:
        raise ValueError(
            "SESSION_IDLE_TIMEOUT_MINUTES must be >= 1, "
            f"got {config.sessions.idle_timeout_minutes}"
        )
    if config.sessions.sweep_interval_minutes < 1:
        raise ValueError(
            "SESSION_SWEEP_INTERVAL_MINUTES must be >= 1, "
            f"got {config.sessions.sweep_interval_minutes}"
        )
    if config.assistant.statement_window_days < 1:
        raise ValueError(
            f"STATEMENT_WINDOW_DAYS must be >= 1, got {config.assistant.statement_window_days}"
        )
    if config.assistant.statement_preview_count < 0:
        raise ValueError(
            "STATEMENT_PREVIEW_COUNT must be >= 0, "
            f"got {config.assistant.statement_preview_count}"
        )


def load_config() -> AppConfig:
    """Load and validate application configuration."""
    config = AppConfig()
    _validate_config(config)
    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.INFO),
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    logger.info("Configuration loaded (currency=%s)", config.assistant.currency)
    return config


# Singleton instance
settings = load_config()
