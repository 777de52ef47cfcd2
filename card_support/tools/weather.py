"""
Mock weather feed for contextual greetings.

In production, this would call a weather API for the customer's region.
Here a random condition is picked and mapped to a friendly phrase.
"""

import logging
import random
from datetime import datetime
from enum import Enum
from typing import Callable, Optional, Protocol

from card_support.schemas.conversation_schema import GreetingContext, TimeOfDay

logger = logging.getLogger(__name__)

AFTERNOON_STARTS = 12
EVENING_STARTS = 17


class WeatherCondition(str, Enum):
    SUNNY = "sunny"
    CLOUDY = "cloudy"
    RAINY = "rainy"
    STORMY = "stormy"


GREETING_PHRASES: dict[WeatherCondition, str] = {
    WeatherCondition.SUNNY: "on a sunshine day!",
    WeatherCondition.CLOUDY: "a bit cloudy but I'm here to help!",
    WeatherCondition.RAINY: "stay dry out there!",
    WeatherCondition.STORMY: "let me help make your stormy day better.",
}


class GreetingContextSource(Protocol):
    """Raises card_support.errors.DataSourceError when the feed is unreachable."""

    def current_greeting_context(self) -> GreetingContext: ...


def time_of_day(moment: datetime) -> TimeOfDay:
    if moment.hour < AFTERNOON_STARTS:
        return TimeOfDay.MORNING
    if moment.hour < EVENING_STARTS:
        return TimeOfDay.AFTERNOON
    return TimeOfDay.EVENING


class WeatherService:
    """Supplies the time-of-day bucket and a weather phrase for greetings."""

    def __init__(
        self,
        rng: Optional[random.Random] = None,
        now: Optional[Callable[[], datetime]] = None,
        condition: Optional[WeatherCondition] = None,
    ) -> None:
        self._rng = rng or random.Random()
        self._now = now or datetime.now
        self._fixed_condition = condition

    def current_condition(self) -> WeatherCondition:
        if self._fixed_condition is not None:
            return self._fixed_condition
        return self._rng.choice(list(WeatherCondition))

    def current_greeting_context(self) -> GreetingContext:
        condition = self.current_condition()
        logger.debug("Weather condition for greeting: %s", condition.value)
        return GreetingContext(
            time_of_day=time_of_day(self._now()),
            weather_phrase=GREETING_PHRASES[condition],
        )
