"""Exceptions shared by the external collaborators."""


class DataSourceError(Exception):
    """Raised when an account, transaction, or weather backend cannot be reached."""
