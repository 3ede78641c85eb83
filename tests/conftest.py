"""
Shared test fixtures and helpers for the Faultline test suite.
"""

import sys

import pytest

from faultline.testing import make_record

# Import fixtures so pytest can discover them
from faultline.testing.fixtures import (  # noqa: F401
    log_path,
    fault_config,
    recording_presenter,
    recording_halter,
    fault_core,
)


@pytest.fixture
def record_factory():
    return make_record


@pytest.fixture
def no_last_exception(monkeypatch):
    """Hide any last unhandled exception the test session left behind."""
    monkeypatch.setattr(sys, "last_exc", None, raising=False)
    monkeypatch.setattr(sys, "last_value", None, raising=False)
