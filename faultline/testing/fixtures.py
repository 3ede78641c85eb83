"""
Faultline Testing - Pytest Fixtures.

Import the fixtures in your ``conftest.py``::

    from faultline.testing.fixtures import (  # noqa: F401
        fault_config, fault_core, recording_presenter, recording_halter,
    )
"""

from __future__ import annotations

import pytest

from faultline.config import FaultlineConfig
from faultline.runtime import ErrorHandlingCore

from .faults import RecordingHalter, RecordingPresenter


@pytest.fixture
def log_path(tmp_path):
    """Fault log file inside a per-test directory."""
    return tmp_path / "errors.txt"


@pytest.fixture
def fault_config(log_path):
    """Development-mode config logging to ``log_path``."""
    return FaultlineConfig.from_mapping({"log_destination_terminal": str(log_path)})


@pytest.fixture
def recording_presenter():
    presenter = RecordingPresenter()
    yield presenter
    presenter.reset()


@pytest.fixture
def recording_halter():
    halter = RecordingHalter()
    yield halter
    halter.reset()


@pytest.fixture
def fault_core(fault_config, recording_presenter, recording_halter):
    """Initialised core without interpreter hooks."""
    return ErrorHandlingCore(
        fault_config,
        presenter=recording_presenter,
        halt=recording_halter,
        hard_exit=recording_halter,
    ).init()
