"""Pure reducer for the application state.

``reduce(state, action)`` maps a snapshot and an action to the next
snapshot. Transitions are total and synchronous and never perform I/O.
An action that does not apply in the current state (a write request
outside ``idle``, a result for an image that is no longer selected, a
device that is not in the current set) returns the *same* snapshot
object, which the store treats as "nothing changed".

Lifecycle transitions::

    idle -> preparing -> writing -> verifying -> complete
    preparing/writing/verifying/complete -> error
    complete/error -> idle (reset)
"""

from collections.abc import Callable
from dataclasses import replace
from typing import Any, TypeVar

from gosh_usb.state import actions as a
from gosh_usb.state.snapshot import AppState
from gosh_usb.types import PHASE_RANK, TERMINAL_PHASES, WritePhase

ActionT = TypeVar("ActionT", bound=a.Action)
Handler = Callable[[AppState, Any], AppState]

_HANDLERS: dict[type[a.Action], Handler] = {}


def _handles(action_type: type[ActionT]) -> Callable[[Handler], Handler]:
    def register(handler: Handler) -> Handler:
        _HANDLERS[action_type] = handler
        return handler

    return register


def reduce(state: AppState, action: a.Action) -> AppState:
    """Apply an action to a snapshot.

    Args:
        state: Current snapshot.
        action: Action to apply.

    Returns:
        The next snapshot, or ``state`` itself if the action does not apply.

    Raises:
        TypeError: Unknown action type.
    """
    handler = _HANDLERS.get(type(action))
    if handler is None:
        raise TypeError(f"Unknown action: {type(action).__name__}")
    return handler(state, action)


# Image selection


@_handles(a.ImageSelected)
def _image_selected(state: AppState, action: a.ImageSelected) -> AppState:
    return replace(
        state,
        selected_file=action.file,
        calculated_checksum=None,
        image_validation=None,
        image_validation_loading=False,
    )


@_handles(a.ImageCleared)
def _image_cleared(state: AppState, action: a.ImageCleared) -> AppState:
    return replace(
        state,
        selected_file=None,
        calculated_checksum=None,
        image_validation=None,
        image_validation_loading=False,
    )


# Devices


@_handles(a.DeviceSelected)
def _device_selected(state: AppState, action: a.DeviceSelected) -> AppState:
    if state.is_writing:
        return state
    if action.device is None:
        return replace(state, selected_device=None)
    for device in state.devices:
        if device.path == action.device.path:
            return replace(state, selected_device=device)
    return state


@_handles(a.DevicesLoading)
def _devices_loading(state: AppState, action: a.DevicesLoading) -> AppState:
    return replace(state, devices_loading=action.loading)


@_handles(a.DevicesEnumerated)
def _devices_enumerated(state: AppState, action: a.DevicesEnumerated) -> AppState:
    devices = tuple(action.devices)
    selected = state.selected_device
    if selected is not None:
        # Keep the selection pointing at the fresh record, or drop it if unplugged
        selected = next((d for d in devices if d.path == selected.path), None)
    return replace(state, devices=devices, selected_device=selected)


@_handles(a.DevicesEnumerationFailed)
def _devices_enumeration_failed(
    state: AppState, action: a.DevicesEnumerationFailed
) -> AppState:
    return replace(state, devices=())


# Checksum


@_handles(a.ChecksumAlgorithmChanged)
def _checksum_algorithm_changed(
    state: AppState, action: a.ChecksumAlgorithmChanged
) -> AppState:
    return replace(
        state, checksum_algorithm=action.algorithm, calculated_checksum=None
    )


@_handles(a.ExpectedChecksumChanged)
def _expected_checksum_changed(
    state: AppState, action: a.ExpectedChecksumChanged
) -> AppState:
    return replace(state, expected_checksum=action.value)


def _checksum_target_matches(state: AppState, path: str, algorithm: Any) -> bool:
    return (
        state.selected_file is not None
        and state.selected_file.path == path
        and state.checksum_algorithm == algorithm
    )


@_handles(a.ChecksumRequested)
def _checksum_requested(state: AppState, action: a.ChecksumRequested) -> AppState:
    if not _checksum_target_matches(state, action.path, action.algorithm):
        return state
    return replace(state, checksum_loading=True, calculated_checksum=None)


@_handles(a.ChecksumCalculated)
def _checksum_calculated(state: AppState, action: a.ChecksumCalculated) -> AppState:
    if not _checksum_target_matches(state, action.path, action.algorithm):
        # Digest for another image or algorithm must never be shown
        return replace(state, checksum_loading=False)
    return replace(state, checksum_loading=False, calculated_checksum=action.digest)


@_handles(a.ChecksumFailed)
def _checksum_failed(state: AppState, action: a.ChecksumFailed) -> AppState:
    return replace(state, checksum_loading=False)


# Validation


def _is_selected_path(state: AppState, path: str) -> bool:
    return state.selected_file is not None and state.selected_file.path == path


@_handles(a.ValidationRequested)
def _validation_requested(state: AppState, action: a.ValidationRequested) -> AppState:
    if not _is_selected_path(state, action.path):
        return state
    return replace(state, image_validation_loading=True)


@_handles(a.ValidationCompleted)
def _validation_completed(state: AppState, action: a.ValidationCompleted) -> AppState:
    if not _is_selected_path(state, action.path):
        return state
    return replace(
        state, image_validation=action.result, image_validation_loading=False
    )


@_handles(a.ValidationFailed)
def _validation_failed(state: AppState, action: a.ValidationFailed) -> AppState:
    if not _is_selected_path(state, action.path):
        return state
    return replace(state, image_validation=None, image_validation_loading=False)


# Write lifecycle


@_handles(a.WriteStarted)
def _write_started(state: AppState, action: a.WriteStarted) -> AppState:
    if not state.can_write:
        return state
    return replace(
        state,
        write_phase=WritePhase.PREPARING,
        write_progress=None,
        write_error=None,
    )


@_handles(a.WriteProgressReceived)
def _write_progress_received(
    state: AppState, action: a.WriteProgressReceived
) -> AppState:
    if not state.is_writing:
        return state

    event_phase = WritePhase(action.progress.phase.value)
    if PHASE_RANK[event_phase] < PHASE_RANK[state.write_phase]:
        # Late event from an earlier sub-phase; phase never moves backward
        return state

    return replace(state, write_progress=action.progress, write_phase=event_phase)


@_handles(a.WriteSucceeded)
def _write_succeeded(state: AppState, action: a.WriteSucceeded) -> AppState:
    if not state.is_writing:
        return state
    return replace(state, write_phase=WritePhase.COMPLETE)


@_handles(a.WriteFailed)
def _write_failed(state: AppState, action: a.WriteFailed) -> AppState:
    if state.write_phase in (WritePhase.IDLE, WritePhase.ERROR):
        return state
    return replace(state, write_phase=WritePhase.ERROR, write_error=action.message)


@_handles(a.WriteReset)
def _write_reset(state: AppState, action: a.WriteReset) -> AppState:
    if state.write_phase not in TERMINAL_PHASES:
        return state
    return replace(
        state, write_phase=WritePhase.IDLE, write_progress=None, write_error=None
    )


# Preferences


@_handles(a.PreferencesLoaded)
def _preferences_loaded(state: AppState, action: a.PreferencesLoaded) -> AppState:
    prefs = action.preferences
    return replace(
        state,
        theme=prefs.theme,
        verify_after_write=prefs.verify_after_write,
        mode=prefs.mode,
        auto_eject=prefs.auto_eject,
        show_notification=prefs.show_notification,
    )


@_handles(a.ThemeChanged)
def _theme_changed(state: AppState, action: a.ThemeChanged) -> AppState:
    return replace(state, theme=action.theme)


@_handles(a.VerifyAfterWriteChanged)
def _verify_after_write_changed(
    state: AppState, action: a.VerifyAfterWriteChanged
) -> AppState:
    if state.is_writing:
        return state
    return replace(state, verify_after_write=action.enabled)


@_handles(a.ModeChanged)
def _mode_changed(state: AppState, action: a.ModeChanged) -> AppState:
    if state.is_writing:
        return state
    return replace(state, mode=action.mode)


@_handles(a.AutoEjectChanged)
def _auto_eject_changed(state: AppState, action: a.AutoEjectChanged) -> AppState:
    return replace(state, auto_eject=action.enabled)


@_handles(a.ShowNotificationChanged)
def _show_notification_changed(
    state: AppState, action: a.ShowNotificationChanged
) -> AppState:
    return replace(state, show_notification=action.enabled)


__all__ = ["reduce"]
