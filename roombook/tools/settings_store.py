"""
Settings documents: the store interface and default-on-failure loading.

Stores hand back raw documents (dicts as persisted, camelCase or
snake_case). ``load_system_settings``, ``load_schedule`` and
``load_email_settings`` are the one place where a document becomes a
model, and the one place that falls back to documented defaults when the
store fails or the document does not parse.
"""

import copy
import logging
from typing import Any, Optional, Protocol

from pydantic import ValidationError

from roombook.schemas.schedule_schema import Schedule, default_schedule
from roombook.schemas.settings_schema import EmailSettings, SystemSettings

logger = logging.getLogger(__name__)

Document = dict[str, Any]


class SettingsStore(Protocol):
    """Read access to the three settings singletons.

    A missing document is returned as ``None``.
    """

    def get_system_settings(self) -> Optional[Document]:
        ...

    def get_time_slot_settings(self) -> Optional[Document]:
        ...

    def get_email_settings(self) -> Optional[Document]:
        ...


def load_system_settings(store: SettingsStore) -> SystemSettings:
    """Resolve system settings: stored document, else defaults."""
    try:
        document = store.get_system_settings()
        if document is None:
            return SystemSettings()
        return SystemSettings.model_validate(document)
    except ValidationError as exc:
        logger.warning("Invalid system settings document, using defaults: %s", exc)
    except Exception:
        logger.exception("Error fetching system settings, using defaults")
    return SystemSettings()


def load_schedule(store: SettingsStore) -> Schedule:
    """Resolve the business-hour schedule, migrating legacy shapes."""
    try:
        document = store.get_time_slot_settings()
        if document is None:
            return default_schedule()
        return Schedule.model_validate(document)
    except ValidationError as exc:
        logger.warning("Invalid time slot settings document, using defaults: %s", exc)
    except Exception:
        logger.exception("Error fetching time slot settings, using defaults")
    return default_schedule()


def load_email_settings(store: SettingsStore) -> EmailSettings:
    """Resolve email settings; both send toggles are off on failure."""
    try:
        document = store.get_email_settings()
        if document is None:
            return EmailSettings()
        return EmailSettings.model_validate(document)
    except ValidationError as exc:
        logger.warning("Invalid email settings document, using defaults: %s", exc)
    except Exception:
        logger.exception("Error fetching email settings, using defaults")
    return EmailSettings()


class InMemorySettingsStore:
    """Dict-backed settings store with merge-style updates."""

    def __init__(
        self,
        system: Optional[Document] = None,
        time_slots: Optional[Document] = None,
        email: Optional[Document] = None,
    ) -> None:
        self._system = copy.deepcopy(system)
        self._time_slots = copy.deepcopy(time_slots)
        self._email = copy.deepcopy(email)

    def get_system_settings(self) -> Optional[Document]:
        return copy.deepcopy(self._system)

    def get_time_slot_settings(self) -> Optional[Document]:
        return copy.deepcopy(self._time_slots)

    def get_email_settings(self) -> Optional[Document]:
        return copy.deepcopy(self._email)

    def update_system_settings(self, changes: Document) -> None:
        self._system = {**(self._system or {}), **changes}
        logger.info("System settings updated: %s", sorted(changes))

    def update_time_slot_settings(self, changes: Document) -> None:
        self._time_slots = {**(self._time_slots or {}), **changes}
        logger.info("Time slot settings updated: %s", sorted(changes))

    def update_email_settings(self, changes: Document) -> None:
        merged = {**(self._email or {}), **changes}
        if "templates" in changes:
            merged["templates"] = {
                **((self._email or {}).get("templates") or {}),
                **(changes["templates"] or {}),
            }
        self._email = merged
        logger.info("Email settings updated: %s", sorted(changes))
