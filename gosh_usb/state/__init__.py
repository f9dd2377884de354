"""Central state store: snapshot, actions, reducer and store."""

from gosh_usb.state import actions
from gosh_usb.state.reducer import reduce
from gosh_usb.state.snapshot import AppState, Preferences, compare_checksums
from gosh_usb.state.store import Store

__all__ = [
    "AppState",
    "Preferences",
    "Store",
    "actions",
    "compare_checksums",
    "reduce",
]
