"""Persisted user preferences."""

from gosh_usb.preferences.store import (
    PREFERENCE_KEYS,
    PreferenceStore,
    PreferencesSync,
    coerce_value,
    parse_preferences,
)

__all__ = [
    "PREFERENCE_KEYS",
    "PreferenceStore",
    "PreferencesSync",
    "coerce_value",
    "parse_preferences",
]
