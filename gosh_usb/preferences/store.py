"""Persisted preferences.

Each preference lives under its own string key and is read
independently at startup. A missing or malformed value falls back to
the default for that key only:

- ``gosh-usb-theme``: light, dark or system (default system)
- ``gosh-usb-verify-default``: false only when stored as "false"
- ``gosh-usb-mode``: standard or advanced (default standard)
- ``gosh-usb-auto-eject``: true only when stored as "true"
- ``gosh-usb-show-notification``: false only when stored as "false"

:class:`PreferencesSync` observes the store and writes back every
preference that changed, applying the theme when it changes.
"""

import logging
from collections.abc import Callable
from dataclasses import fields
from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from gosh_usb.db import get_session
from gosh_usb.preferences.models import Preference
from gosh_usb.state.snapshot import AppState, Preferences
from gosh_usb.state.store import Store
from gosh_usb.types import AppMode, Theme

logger = logging.getLogger(__name__)

# Preferences field name -> storage key
PREFERENCE_KEYS: dict[str, str] = {
    "theme": "gosh-usb-theme",
    "verify_after_write": "gosh-usb-verify-default",
    "mode": "gosh-usb-mode",
    "auto_eject": "gosh-usb-auto-eject",
    "show_notification": "gosh-usb-show-notification",
}

ThemeApplier = Callable[[Theme], None]


def _parse_enum(enum_type: Any, raw: str | None, default: Any) -> Any:
    try:
        return enum_type(raw)
    except ValueError:
        return default


def parse_preferences(raw: dict[str, str]) -> Preferences:
    """Build preferences from raw stored strings, applying per-key fallbacks.

    Args:
        raw: Mapping of storage key to stored string.

    Returns:
        Preferences instance.
    """
    return Preferences(
        theme=_parse_enum(Theme, raw.get(PREFERENCE_KEYS["theme"]), Theme.SYSTEM),
        verify_after_write=raw.get(PREFERENCE_KEYS["verify_after_write"]) != "false",
        mode=_parse_enum(AppMode, raw.get(PREFERENCE_KEYS["mode"]), AppMode.STANDARD),
        auto_eject=raw.get(PREFERENCE_KEYS["auto_eject"]) == "true",
        show_notification=raw.get(PREFERENCE_KEYS["show_notification"]) != "false",
    )


def serialize_value(value: Any) -> str:
    """Convert a preference value to its stored string form."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (Theme, AppMode)):
        return value.value
    return str(value)


def coerce_value(field_name: str, text: str) -> Any:
    """Parse user input for a preference field strictly.

    Args:
        field_name: Preferences field name (e.g., 'auto_eject').
        text: User-supplied value.

    Returns:
        Typed value for the field.

    Raises:
        ValueError: Unknown field or invalid value.
    """
    text = text.strip().lower()
    if field_name == "theme":
        return Theme(text)
    if field_name == "mode":
        return AppMode(text)
    if field_name in PREFERENCE_KEYS:
        if text in ("true", "yes", "on", "1"):
            return True
        if text in ("false", "no", "off", "0"):
            return False
        raise ValueError(f"Expected a boolean for {field_name}, got {text!r}")
    raise ValueError(f"Unknown preference: {field_name}")


class PreferenceStore:
    """Key/value preference persistence backed by SQLAlchemy."""

    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self.session_factory = session_factory

    def read_raw(self) -> dict[str, str]:
        """Return every stored preference as raw strings."""
        with get_session(self.session_factory) as session:
            rows = session.execute(select(Preference)).scalars().all()
            return {row.key: row.value for row in rows}

    def load(self) -> Preferences:
        """Load preferences, falling back to defaults if storage is unreadable."""
        try:
            raw = self.read_raw()
        except SQLAlchemyError as e:
            logger.warning("Failed to read preferences, using defaults: %s", e)
            return Preferences()
        return parse_preferences(raw)

    def set(self, field_name: str, value: Any) -> None:
        """Persist one preference field.

        Raises:
            KeyError: Unknown preference field.
        """
        key = PREFERENCE_KEYS[field_name]
        stored = serialize_value(value)
        with get_session(self.session_factory) as session:
            row = session.get(Preference, key)
            if row is None:
                session.add(Preference(key=key, value=stored))
            else:
                row.value = stored
        logger.debug("Saved preference %s=%s", key, stored)

    def save(self, preferences: Preferences) -> None:
        """Persist every preference field."""
        for field in fields(preferences):
            self.set(field.name, getattr(preferences, field.name))


def changed_fields(old: Preferences, new: Preferences) -> list[str]:
    """Return the names of preference fields that differ."""
    return [
        field.name
        for field in fields(new)
        if getattr(old, field.name) != getattr(new, field.name)
    ]


class PreferencesSync:
    """Store observer writing preference changes back to storage."""

    def __init__(
        self,
        store: Store,
        preference_store: PreferenceStore,
        apply_theme: ThemeApplier | None = None,
    ) -> None:
        self.store = store
        self.preference_store = preference_store
        self.apply_theme = apply_theme
        self._unsubscribe: Callable[[], None] | None = None

    def start(self) -> None:
        if self._unsubscribe is not None:
            return
        self._unsubscribe = self.store.subscribe(self._on_state_change)
        if self.apply_theme is not None:
            self.apply_theme(self.store.state.theme)

    def stop(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def _on_state_change(self, old: AppState, new: AppState) -> None:
        changed = changed_fields(old.preferences, new.preferences)
        if not changed:
            return

        for name in changed:
            try:
                self.preference_store.set(name, getattr(new, name))
            except SQLAlchemyError as e:
                logger.warning("Failed to save preference %s: %s", name, e)

        if "theme" in changed and self.apply_theme is not None:
            self.apply_theme(new.theme)


__all__ = [
    "PREFERENCE_KEYS",
    "PreferenceStore",
    "PreferencesSync",
    "ThemeApplier",
    "changed_fields",
    "coerce_value",
    "parse_preferences",
    "serialize_value",
]
