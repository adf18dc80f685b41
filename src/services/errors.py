"""
Errors raised by the setup services.

Each error carries the HTTP status the API layer should answer with.
"""
from typing import Optional

from sqlalchemy.exc import DBAPIError, SQLAlchemyError


class SetupError(Exception):
    """Base class for setup and seeding failures."""

    status_code = 500

    def __init__(self, message: str, error: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.error = error


class ConfigurationMissingError(SetupError):
    """Required connection info is absent from both the request and settings."""

    status_code = 400


class InvalidConfigurationError(SetupError):
    """Supplied connection info cannot be parsed."""

    status_code = 400


class PrerequisiteMissingError(SetupError):
    """A seeding step depends on rows that do not exist yet."""

    status_code = 400


class StoreError(SetupError):
    """Connecting to or querying the relational or vector store failed."""

    status_code = 500


def driver_message(exc: BaseException) -> str:
    """Return the underlying driver message for a store exception."""
    if isinstance(exc, DBAPIError) and exc.orig is not None:
        return str(exc.orig)
    if isinstance(exc, SQLAlchemyError):
        return str(exc).split("\n")[0]
    return str(exc)
