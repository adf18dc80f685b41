"""
User-scoped key/value settings persisted in the app_config table.
"""
import logging
from typing import Optional
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError

from src.models.database import AppConfigEntry, get_session_factory, open_engine
from src.services.errors import StoreError, driver_message

logger = logging.getLogger(__name__)

SETUP_COMPLETE_KEY = "setup_complete"


class AppConfigStore:
    """Reads and writes app_config rows for one database."""

    def __init__(self, connection_string: str):
        self.connection_string = connection_string

    def set_value(self, user_id: str, key: str, value: str) -> None:
        """Insert or update a setting."""
        try:
            with open_engine(self.connection_string) as engine:
                with get_session_factory(engine)() as session:
                    entry = session.execute(
                        select(AppConfigEntry).where(
                            AppConfigEntry.user_id == user_id,
                            AppConfigEntry.config_key == key,
                        )
                    ).scalars().first()

                    if entry is None:
                        session.add(AppConfigEntry(user_id=user_id, config_key=key, config_value=value))
                    else:
                        entry.config_value = value
                        entry.updated_at = func.now()
                    session.commit()
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to save setting '{key}'", driver_message(e)) from e

        logger.debug(f"Saved setting {key} for user {user_id}")

    def get_value(self, user_id: str, key: str) -> Optional[str]:
        """Return a setting, or None if unset."""
        return self.get_all(user_id).get(key)

    def get_all(self, user_id: str) -> dict[str, str]:
        """All settings for a user."""
        try:
            with open_engine(self.connection_string) as engine:
                with engine.connect() as conn:
                    rows = conn.execute(
                        select(AppConfigEntry.config_key, AppConfigEntry.config_value)
                        .where(AppConfigEntry.user_id == user_id)
                        .order_by(AppConfigEntry.id)
                    ).all()
        except SQLAlchemyError as e:
            raise StoreError("Failed to read settings", driver_message(e)) from e

        return {key: value for key, value in rows}

    def mark_setup_complete(self, user_id: str) -> None:
        self.set_value(user_id, SETUP_COMPLETE_KEY, "true")

    def is_setup_complete(self, user_id: str) -> bool:
        return self.get_value(user_id, SETUP_COMPLETE_KEY) == "true"
