"""
Error handling core (runtime.py)

End-to-end scenarios through ErrorHandlingCore: manual triggers,
extraction, idempotent shutdown, modes and initialisation errors.
"""

import json
import threading

import pytest

import faultline
from faultline.config import FaultlineConfig
from faultline.faults.core import Continue, FaultKind, Halt, SeverityTier
from faultline.faults.errors import ConfigurationError
from faultline.faults.ledger import LedgerSnapshot
from faultline.faults.presenter import PresentationKind
from faultline.faults.shutdown import ShutdownPhase
from faultline.runtime import ErrorHandlingCore
from faultline.testing import RecordingHalter, RecordingPresenter


def read_log(path):
    return [json.loads(line) for line in path.read_text().splitlines()]


def build_core(log_path, presenter=None, halter=None, **params):
    config = FaultlineConfig.from_mapping({"log_destination_terminal": str(log_path), **params})
    return ErrorHandlingCore(
        config,
        presenter=presenter or RecordingPresenter(),
        halt=halter or RecordingHalter(),
    ).init()


# ============================================================================
# Scenarios
# ============================================================================

class TestManualTriggers:

    def test_minor_then_extract(self, fault_core, recording_halter):
        fault_core.trigger_minor("Nothing serious")
        records = fault_core.extract()
        assert len(records) == 1
        assert records[0].tier is SeverityTier.USER_MINOR
        assert records[0].kind is FaultKind.USER_TRIGGERED
        assert records[0].file.endswith("test_runtime.py")
        assert fault_core.extract() == []
        assert not recording_halter.halted

    def test_major_logged_at_shutdown(self, fault_core, log_path, recording_halter):
        fault_core.trigger_major("A little worrying")
        assert log_path.read_text() == ""
        assert fault_core.shutdown() == Continue()
        (entry,) = read_log(log_path)
        assert entry["terminal"] is False
        assert entry["log"][0]["message"] == "A little worrying"
        assert entry["log"][0]["tier"] == "user_major"
        assert not recording_halter.halted

    def test_fatal_halts_with_full_dump(self, fault_core, log_path, recording_presenter, recording_halter):
        fault_core.trigger_minor("one")
        fault_core.trigger_major("two")
        outcome = fault_core.trigger_fatal("I can't go on!")

        assert outcome == Halt(1)
        assert recording_halter.calls == [1]
        captured = recording_presenter.last
        assert captured.kind is PresentationKind.DEVELOPMENT
        assert [r.message for r in captured.records] == ["one", "two", "I can't go on!"]
        assert captured.counts["user_fatal"] == 1

        (entry,) = read_log(log_path)
        assert entry["terminal"] is True
        assert len(entry["log"]) == 3

    def test_second_fatal_is_noop(self, fault_core, log_path, recording_presenter, recording_halter):
        fault_core.trigger_fatal("first")
        assert fault_core.trigger_fatal("second") == Continue()
        assert recording_halter.calls == [1]
        assert recording_presenter.count == 1
        assert len(read_log(log_path)) == 1
        assert fault_core.last().message == "second"

    def test_shutdown_after_fatal_is_noop(self, fault_core, log_path):
        fault_core.trigger_fatal("fatal")
        assert fault_core.shutdown() == Continue()
        assert fault_core.shutdown() == Continue()
        assert len(read_log(log_path)) == 1
        assert fault_core.phase is ShutdownPhase.COMPLETED

    def test_extract_with_counts(self, fault_core):
        fault_core.trigger_minor("a")
        fault_core.trigger_major("b")
        snapshot = fault_core.extract(with_counts=True)
        assert isinstance(snapshot, LedgerSnapshot)
        assert snapshot.counts[SeverityTier.USER_MINOR] == 1
        assert snapshot.counts[SeverityTier.USER_MAJOR] == 1

    def test_last_is_non_destructive(self, fault_core):
        fault_core.trigger_minor("a")
        assert fault_core.last().message == "a"
        assert len(fault_core.extract()) == 1


class TestModes:

    def test_production_hides_detail(self, tmp_path):
        presenter = RecordingPresenter()
        core = build_core(tmp_path / "errors.txt", presenter=presenter, mode="production")
        core.trigger_fatal("internal detail")
        assert presenter.last.kind is PresentationKind.PRODUCTION
        assert presenter.last.records == ()
        assert read_log(tmp_path / "errors.txt")[0]["log"][0]["message"] == "internal detail"

    def test_silent_no_presentation(self, tmp_path):
        presenter = RecordingPresenter()
        halter = RecordingHalter()
        core = build_core(tmp_path / "errors.txt", presenter=presenter, halter=halter, mode=2)
        core.trigger_fatal("quiet")
        assert presenter.count == 0
        assert halter.exit_code == 1

    def test_custom_fatal_action(self, tmp_path):
        seen = []
        core = build_core(
            tmp_path / "errors.txt",
            mode="custom",
            custom_actions={"fatal": lambda context: seen.append(len(context.records))},
        )
        core.trigger_major("bg")
        core.trigger_fatal("stop")
        assert seen == [2]
        assert read_log(tmp_path / "errors.txt") == []


class TestLogData:

    def test_add_log_data(self, fault_core, log_path):
        fault_core.add_log_data({"host": "web-1"})
        fault_core.add_log_data({"host": "web-2", "pid": 7})
        fault_core.trigger_fatal("x")
        assert read_log(log_path)[0]["data"] == {"host": "web-2", "pid": 7}

    def test_add_log_data_requires_mapping(self, fault_core):
        with pytest.raises(TypeError):
            fault_core.add_log_data(["not", "a", "dict"])

    def test_set_timestamp(self, fault_core, log_path):
        fault_core.set_timestamp("2024-06-01 12:00:00")
        fault_core.trigger_fatal("x")
        assert read_log(log_path)[0]["timestamp"] == "2024-06-01 12:00:00"


# ============================================================================
# Lifecycle
# ============================================================================

class TestLifecycle:

    def test_requires_init(self, fault_config):
        core = ErrorHandlingCore(fault_config)
        with pytest.raises(RuntimeError):
            core.trigger_minor("too early")

    def test_init_is_idempotent(self, fault_core):
        controller = fault_core.controller
        assert fault_core.init() is fault_core
        assert fault_core.controller is controller

    def test_unwritable_destination(self, tmp_path):
        config = FaultlineConfig.from_mapping(
            {"log_destination_terminal": str(tmp_path / "missing" / "errors.txt")}
        )
        with pytest.raises(ConfigurationError) as exc_info:
            ErrorHandlingCore(config).init()
        assert exc_info.value.key == "log_destination_terminal"

    def test_context_manager_exception(self, tmp_path):
        presenter = RecordingPresenter()
        halter = RecordingHalter()
        core = ErrorHandlingCore(
            FaultlineConfig.from_mapping({"log_destination_terminal": str(tmp_path / "e.txt")}),
            presenter=presenter,
            halt=halter,
        )
        with pytest.raises(ZeroDivisionError):
            with core:
                1 / 0
        assert halter.calls == [1]
        assert presenter.last.records[0].exception_type == "ZeroDivisionError"

    def test_context_manager_clean_exit(self, tmp_path, no_last_exception):
        halter = RecordingHalter()
        core = ErrorHandlingCore(
            FaultlineConfig.from_mapping({"log_destination_terminal": str(tmp_path / "e.txt")}),
            presenter=RecordingPresenter(),
            halt=halter,
        )
        with core:
            core.trigger_major("logged on exit")
        assert not halter.halted
        assert read_log(tmp_path / "e.txt")[0]["terminal"] is False

    def test_initialise_rejects_unknown_keys(self, tmp_path):
        with pytest.raises(ConfigurationError) as exc_info:
            faultline.initialise(
                {"log_directory": str(tmp_path), "colour": "red", "size": 3},
                install_hooks=False,
            )
        assert exc_info.value.keys == ["colour", "size"]
        assert "colour, size" in str(exc_info.value)

    def test_initialise_log_directory(self, tmp_path):
        core = faultline.initialise(
            {"log_directory": str(tmp_path), "mode": "silent"},
            halt=RecordingHalter(),
            install_hooks=False,
        )
        assert core.config.log_destination_terminal == str(tmp_path / "errors.txt")
        core.trigger_fatal("x")
        assert len(read_log(tmp_path / "errors.txt")) == 1

    def test_repr(self, fault_core):
        assert repr(fault_core) == "ErrorHandlingCore(mode=development, phase=idle)"


# ============================================================================
# Halting off the main thread
# ============================================================================

class TestThreadHalt:

    @pytest.fixture
    def halters(self):
        return RecordingHalter(), RecordingHalter()

    @pytest.fixture
    def core(self, tmp_path, halters):
        halt, hard_exit = halters
        return ErrorHandlingCore(
            FaultlineConfig.from_mapping({
                "log_destination_terminal": str(tmp_path / "e.txt"),
                "mode": "silent",
            }),
            presenter=RecordingPresenter(),
            halt=halt,
            hard_exit=hard_exit,
        ).init()

    def test_fatal_in_worker_thread_hard_exits(self, core, halters, tmp_path):
        halt, hard_exit = halters
        worker = threading.Thread(target=core.trigger_fatal, args=("worker gave up",))
        worker.start()
        worker.join()
        assert hard_exit.calls == [1]
        assert not halt.halted
        (entry,) = read_log(tmp_path / "e.txt")
        assert entry["terminal"] is True
        assert entry["log"][0]["message"] == "worker gave up"

    def test_fatal_on_main_thread_uses_halt(self, core, halters):
        halt, hard_exit = halters
        core.trigger_fatal("main gave up")
        assert halt.calls == [1]
        assert not hard_exit.halted

    def test_continue_never_exits(self, core, halters):
        worker = threading.Thread(target=core.trigger_major, args=("still fine",))
        worker.start()
        worker.join()
        assert not any(h.halted for h in halters)
