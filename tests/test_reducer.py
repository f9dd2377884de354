"""Tests for state/reducer.py - lifecycle and selection transitions."""

import pytest
from conftest import make_device, make_file, make_progress

from gosh_usb.backend import ImageValidation
from gosh_usb.state import AppState, Preferences, actions, reduce
from gosh_usb.types import AppMode, ChecksumAlgorithm, Theme, WritePhase


def ready_state(**overrides) -> AppState:
    """State with an image and a selected, listed device."""
    device = make_device()
    values = {
        "selected_file": make_file(),
        "devices": (device,),
        "selected_device": device,
    }
    values.update(overrides)
    return AppState(**values)


def run(state: AppState, *items: actions.Action) -> AppState:
    for action in items:
        state = reduce(state, action)
    return state


class TestImageSelection:
    """Tests for image selection transitions."""

    def test_select_clears_checksum_and_validation(self):
        """Selecting a new image drops results computed for the previous one."""
        state = AppState(
            selected_file=make_file("/a.iso"),
            calculated_checksum="abc",
            image_validation=ImageValidation(is_valid=True, format="ISO 9660"),
            image_validation_loading=True,
        )
        new = reduce(state, actions.ImageSelected(make_file("/b.iso")))
        assert new.selected_file.path == "/b.iso"
        assert new.calculated_checksum is None
        assert new.image_validation is None
        assert new.image_validation_loading is False

    def test_reselect_same_image_still_clears(self):
        """Choosing the same path again still starts from a clean slate."""
        file = make_file()
        state = AppState(selected_file=file, calculated_checksum="abc")
        assert reduce(state, actions.ImageSelected(file)).calculated_checksum is None

    def test_clear_image(self):
        """Clearing resets the image and its validation state."""
        state = AppState(
            selected_file=make_file(),
            image_validation=ImageValidation(is_valid=False, format="Unknown"),
        )
        new = reduce(state, actions.ImageCleared())
        assert new.selected_file is None
        assert new.image_validation is None
        assert new.calculated_checksum is None

    def test_select_keeps_expected_checksum(self):
        """The typed expected digest belongs to the user, not the image."""
        state = AppState(expected_checksum="ab12")
        new = reduce(state, actions.ImageSelected(make_file()))
        assert new.expected_checksum == "ab12"


class TestDeviceSelection:
    """Tests for device selection and enumeration transitions."""

    def test_select_listed_device(self):
        """A device from the current set can be selected."""
        device = make_device()
        state = AppState(devices=(device,))
        assert reduce(state, actions.DeviceSelected(device)).selected_device == device

    def test_select_unlisted_device_ignored(self):
        """A device not in the current set is never selected."""
        state = AppState(devices=(make_device("/dev/sdb"),))
        new = reduce(state, actions.DeviceSelected(make_device("/dev/sdc")))
        assert new is state

    def test_deselect(self):
        """Selecting None clears the selection."""
        state = ready_state()
        assert reduce(state, actions.DeviceSelected(None)).selected_device is None

    def test_select_ignored_while_writing(self):
        """The destination cannot change while a write is in flight."""
        other = make_device("/dev/sdc")
        state = ready_state(
            devices=(make_device(), other), write_phase=WritePhase.WRITING
        )
        assert reduce(state, actions.DeviceSelected(other)) is state

    def test_enumeration_drops_unplugged_selection(self):
        """Selection is cleared when its path disappears from the set."""
        state = ready_state()
        new = reduce(
            state, actions.DevicesEnumerated((make_device("/dev/sdc"),))
        )
        assert new.selected_device is None
        assert [d.path for d in new.devices] == ["/dev/sdc"]

    def test_enumeration_keeps_present_selection(self):
        """Selection survives when the path is still present."""
        state = ready_state()
        new = reduce(state, actions.DevicesEnumerated((make_device(),)))
        assert new.selected_device.path == "/dev/sdb"

    def test_enumeration_refreshes_selected_record(self):
        """The selection points at the freshly enumerated record."""
        state = ready_state()
        fresh = make_device(mount_points=("/media/usb",))
        new = reduce(state, actions.DevicesEnumerated((fresh,)))
        assert new.selected_device.mount_points == ("/media/usb",)

    def test_empty_enumeration_clears_selection(self):
        """An authoritative empty set clears the selection."""
        new = reduce(ready_state(), actions.DevicesEnumerated(()))
        assert new.selected_device is None
        assert new.devices == ()

    @pytest.mark.parametrize(
        "sequence",
        [
            [("/dev/sdb", "/dev/sdc"), ("/dev/sdc",)],
            [("/dev/sdb",), ("/dev/sdb", "/dev/sdd"), ("/dev/sdd",)],
            [("/dev/sdb",), ()],
        ],
    )
    def test_selection_follows_latest_enumeration(self, sequence):
        """The selection is non-null only if its path is in the latest set."""
        state = ready_state()
        for paths in sequence:
            state = reduce(
                state,
                actions.DevicesEnumerated(tuple(make_device(p) for p in paths)),
            )
        if "/dev/sdb" in sequence[-1]:
            assert state.selected_device is not None
        else:
            assert state.selected_device is None

    def test_enumeration_failure_empties_set_keeps_selection(self):
        """A failed enumeration is not authoritative about presence."""
        state = ready_state()
        new = reduce(state, actions.DevicesEnumerationFailed())
        assert new.devices == ()
        assert new.selected_device is not None

    def test_loading_flag(self):
        """The loading flag follows DevicesLoading."""
        state = reduce(AppState(), actions.DevicesLoading(True))
        assert state.devices_loading is True
        assert reduce(state, actions.DevicesLoading(False)).devices_loading is False


class TestChecksum:
    """Tests for checksum transitions."""

    def test_algorithm_change_clears_digest(self):
        """A digest under one algorithm is never kept under another."""
        state = AppState(selected_file=make_file(), calculated_checksum="abc")
        new = reduce(state, actions.ChecksumAlgorithmChanged(ChecksumAlgorithm.MD5))
        assert new.checksum_algorithm == ChecksumAlgorithm.MD5
        assert new.calculated_checksum is None

    def test_calculated_for_current_selection(self):
        """A result for the selected image and algorithm is stored."""
        file = make_file()
        state = run(
            AppState(selected_file=file),
            actions.ChecksumRequested(file.path, ChecksumAlgorithm.SHA256),
            actions.ChecksumCalculated(file.path, ChecksumAlgorithm.SHA256, "abc"),
        )
        assert state.calculated_checksum == "abc"
        assert state.checksum_loading is False

    def test_calculated_for_previous_algorithm_discarded(self):
        """A result that arrives after the algorithm changed is dropped."""
        file = make_file()
        state = run(
            AppState(selected_file=file),
            actions.ChecksumRequested(file.path, ChecksumAlgorithm.SHA256),
            actions.ChecksumAlgorithmChanged(ChecksumAlgorithm.MD5),
            actions.ChecksumCalculated(file.path, ChecksumAlgorithm.SHA256, "abc"),
        )
        assert state.calculated_checksum is None
        assert state.checksum_loading is False

    def test_calculated_for_previous_image_discarded(self):
        """A result that arrives after the image changed is dropped."""
        state = run(
            AppState(selected_file=make_file("/a.iso")),
            actions.ChecksumRequested("/a.iso", ChecksumAlgorithm.SHA256),
            actions.ImageSelected(make_file("/b.iso")),
            actions.ChecksumCalculated("/a.iso", ChecksumAlgorithm.SHA256, "abc"),
        )
        assert state.calculated_checksum is None

    def test_failure_resets_loading(self):
        """A failed calculation leaves no digest and no loading flag."""
        file = make_file()
        state = run(
            AppState(selected_file=file),
            actions.ChecksumRequested(file.path, ChecksumAlgorithm.SHA256),
            actions.ChecksumFailed(file.path, ChecksumAlgorithm.SHA256),
        )
        assert state.checksum_loading is False
        assert state.calculated_checksum is None

    def test_expected_value_stored_verbatim(self):
        """Whitespace is only ignored when comparing."""
        state = reduce(AppState(), actions.ExpectedChecksumChanged("  AB12 "))
        assert state.expected_checksum == "  AB12 "


class TestValidation:
    """Tests for validation transitions."""

    def test_request_sets_loading(self):
        """Requesting validation for the selected image sets the flag."""
        file = make_file()
        state = reduce(AppState(selected_file=file), actions.ValidationRequested(file.path))
        assert state.image_validation_loading is True

    def test_completed_stores_result(self):
        """A verdict for the selected image is stored."""
        file = make_file()
        result = ImageValidation(is_valid=True, format="ISO 9660")
        state = run(
            AppState(selected_file=file),
            actions.ValidationRequested(file.path),
            actions.ValidationCompleted(file.path, result),
        )
        assert state.image_validation == result
        assert state.image_validation_loading is False

    def test_result_for_other_image_discarded(self):
        """A verdict for an image that is no longer selected is dropped."""
        state = AppState(selected_file=make_file("/b.iso"))
        result = ImageValidation(is_valid=True, format="ISO 9660")
        assert reduce(state, actions.ValidationCompleted("/a.iso", result)) is state

    def test_failure_rolls_back(self):
        """A failed validation leaves no verdict and no loading flag."""
        file = make_file()
        state = run(
            AppState(selected_file=file),
            actions.ValidationRequested(file.path),
            actions.ValidationFailed(file.path),
        )
        assert state.image_validation is None
        assert state.image_validation_loading is False


class TestWriteLifecycle:
    """Tests for the write lifecycle state machine."""

    def test_start_from_idle(self):
        """A ready idle state moves to preparing and clears the old error."""
        state = reduce(ready_state(), actions.WriteStarted())
        assert state.write_phase == WritePhase.PREPARING
        assert state.write_error is None
        assert state.write_progress is None

    @pytest.mark.parametrize(
        "overrides",
        [
            {"selected_file": None},
            {"selected_device": None},
            {"write_phase": WritePhase.WRITING},
            {"write_phase": WritePhase.COMPLETE},
            {"write_phase": WritePhase.ERROR, "write_error": "boom"},
        ],
    )
    def test_start_requires_ready_idle(self, overrides):
        """No image, no device, or a non-idle phase blocks the start."""
        state = ready_state(**overrides)
        assert reduce(state, actions.WriteStarted()) is state

    def test_progress_advances_phase_monotonically(self):
        """writing then verifying events move preparing -> writing -> verifying."""
        state = reduce(ready_state(), actions.WriteStarted())
        phases = [state.write_phase]

        state = reduce(state, actions.WriteProgressReceived(make_progress("writing", 50)))
        phases.append(state.write_phase)
        state = reduce(
            state, actions.WriteProgressReceived(make_progress("verifying", 10))
        )
        phases.append(state.write_phase)

        assert phases == [WritePhase.PREPARING, WritePhase.WRITING, WritePhase.VERIFYING]
        assert state.write_progress.bytes_written == 10

    def test_late_writing_event_after_verifying_dropped(self):
        """A regressing event changes neither phase nor progress."""
        state = run(
            reduce(ready_state(), actions.WriteStarted()),
            actions.WriteProgressReceived(make_progress("writing", 50)),
            actions.WriteProgressReceived(make_progress("verifying", 10)),
        )
        new = reduce(state, actions.WriteProgressReceived(make_progress("writing", 60)))
        assert new is state
        assert new.write_phase == WritePhase.VERIFYING

    def test_progress_ignored_when_not_writing(self):
        """Progress outside preparing/writing/verifying is dropped."""
        for phase in (WritePhase.IDLE, WritePhase.COMPLETE, WritePhase.ERROR):
            state = ready_state(write_phase=phase)
            event = actions.WriteProgressReceived(make_progress("writing", 1))
            assert reduce(state, event) is state

    def test_success(self):
        """Success from a writing phase completes the lifecycle."""
        state = run(
            ready_state(),
            actions.WriteStarted(),
            actions.WriteProgressReceived(make_progress("writing", 100)),
            actions.WriteSucceeded(),
        )
        assert state.write_phase == WritePhase.COMPLETE

    def test_success_ignored_when_idle(self):
        state = ready_state()
        assert reduce(state, actions.WriteSucceeded()) is state

    def test_failure_sets_error(self):
        """Failure forces the error phase with the detail verbatim."""
        state = run(
            ready_state(),
            actions.WriteStarted(),
            actions.WriteFailed("Permission denied"),
        )
        assert state.write_phase == WritePhase.ERROR
        assert state.write_error == "Permission denied"

    def test_failure_ignored_when_idle(self):
        """A failure with no attempt running is not an error."""
        state = ready_state()
        assert reduce(state, actions.WriteFailed("boom")) is state

    @pytest.mark.parametrize("phase", [WritePhase.COMPLETE, WritePhase.ERROR])
    def test_reset_from_terminal(self, phase):
        """Reset returns to idle and clears progress and error."""
        state = ready_state(
            write_phase=phase,
            write_progress=make_progress("verifying", 100),
            write_error="boom" if phase == WritePhase.ERROR else None,
        )
        new = reduce(state, actions.WriteReset())
        assert new.write_phase == WritePhase.IDLE
        assert new.write_progress is None
        assert new.write_error is None

    @pytest.mark.parametrize(
        "phase",
        [WritePhase.IDLE, WritePhase.PREPARING, WritePhase.WRITING, WritePhase.VERIFYING],
    )
    def test_reset_ignored_outside_terminal(self, phase):
        """Only complete and error can be reset."""
        state = ready_state(write_phase=phase)
        assert reduce(state, actions.WriteReset()) is state

    def test_fresh_attempt_after_reset(self):
        """After an error and reset, a new write can start."""
        state = run(
            ready_state(),
            actions.WriteStarted(),
            actions.WriteFailed("boom"),
            actions.WriteReset(),
            actions.WriteStarted(),
        )
        assert state.write_phase == WritePhase.PREPARING
        assert state.write_error is None


class TestPreferences:
    """Tests for preference transitions."""

    def test_loaded(self):
        """Loading preferences replaces every preference field."""
        prefs = Preferences(
            theme=Theme.DARK,
            verify_after_write=False,
            mode=AppMode.ADVANCED,
            auto_eject=True,
            show_notification=False,
        )
        assert reduce(AppState(), actions.PreferencesLoaded(prefs)).preferences == prefs

    def test_mode_change_ignored_while_writing(self):
        state = ready_state(write_phase=WritePhase.WRITING)
        assert reduce(state, actions.ModeChanged(AppMode.ADVANCED)) is state

    def test_verify_toggle_ignored_while_writing(self):
        state = ready_state(write_phase=WritePhase.VERIFYING)
        assert reduce(state, actions.VerifyAfterWriteChanged(False)) is state

    def test_theme_change_allowed_while_writing(self):
        state = ready_state(write_phase=WritePhase.WRITING)
        assert reduce(state, actions.ThemeChanged(Theme.DARK)).theme == Theme.DARK

    def test_toggles(self):
        state = run(
            AppState(),
            actions.AutoEjectChanged(True),
            actions.ShowNotificationChanged(False),
            actions.ModeChanged(AppMode.ADVANCED),
        )
        assert state.auto_eject is True
        assert state.show_notification is False
        assert state.is_advanced is True


class TestReduce:
    """Tests for reduce itself."""

    def test_unknown_action_raises(self):
        class Bogus(actions.Action):
            pass

        with pytest.raises(TypeError, match="Bogus"):
            reduce(AppState(), Bogus())

    def test_input_state_not_mutated(self):
        """The reducer returns new snapshots and leaves the input intact."""
        state = ready_state()
        reduce(state, actions.WriteStarted())
        assert state.write_phase == WritePhase.IDLE
