"""
Classification policy (faults/classification.py)

Tests classify(), mask validation and the default-deny rule for
unclassifiable codes.
"""

import pytest

from faultline.faults.classification import ClassificationPolicy, classify
from faultline.faults.codes import (
    DEFAULT_BACKGROUND_MASK,
    DEFAULT_IGNORE_MASK,
    FaultCode,
)
from faultline.faults.core import SeverityTier
from faultline.faults.errors import ClassificationError, ConfigurationError


@pytest.fixture
def policy():
    return ClassificationPolicy(DEFAULT_IGNORE_MASK, DEFAULT_BACKGROUND_MASK)


# ============================================================================
# classify()
# ============================================================================

class TestClassifyFunction:

    def test_ignore(self):
        assert classify(8, ignore_mask=8, background_mask=2) is SeverityTier.IGNORE

    def test_background(self):
        assert classify(2, ignore_mask=8, background_mask=2) is SeverityTier.BACKGROUND

    def test_unmatched_is_terminal(self):
        assert classify(4096, ignore_mask=8, background_mask=2) is SeverityTier.TERMINAL

    def test_ignore_checked_first(self):
        assert classify(2, ignore_mask=2, background_mask=2) is SeverityTier.IGNORE

    def test_empty_masks(self):
        assert classify(2, 0, 0) is SeverityTier.TERMINAL


# ============================================================================
# ClassificationPolicy
# ============================================================================

class TestPolicyDefaults:

    @pytest.mark.parametrize("code", [
        FaultCode.NOTICE, FaultCode.USER_NOTICE, FaultCode.STRICT,
    ])
    def test_ignored(self, policy, code):
        assert policy.classify(code) is SeverityTier.IGNORE

    @pytest.mark.parametrize("code", [
        FaultCode.WARNING, FaultCode.USER_WARNING, FaultCode.DEPRECATED,
        FaultCode.USER_DEPRECATED, FaultCode.CORE_WARNING, FaultCode.COMPILE_WARNING,
    ])
    def test_background(self, policy, code):
        assert policy.classify(code) is SeverityTier.BACKGROUND

    def test_recoverable_error_terminal(self, policy):
        assert policy.classify(FaultCode.RECOVERABLE_ERROR) is SeverityTier.TERMINAL

    def test_table_covers_every_code(self, policy):
        table = policy.table()
        assert table["WARNING"] is SeverityTier.BACKGROUND
        assert table["NOTICE"] is SeverityTier.IGNORE
        assert table["ERROR"] is SeverityTier.TERMINAL
        assert len(table) == 15


class TestUnclassifiableCodes:

    @pytest.mark.parametrize("code", [0, -2, 3, 1 << 15, 40000, FaultCode.ERROR, FaultCode.PARSE])
    def test_terminal(self, policy, code):
        assert policy.classify(code) is SeverityTier.TERMINAL

    def test_non_integer_terminal(self, policy):
        assert policy.classify("2") is SeverityTier.TERMINAL
        assert policy.classify(True) is SeverityTier.TERMINAL

    def test_validate_code_raises(self, policy):
        with pytest.raises(ClassificationError) as exc_info:
            policy.validate_code(FaultCode.USER_ERROR)
        assert exc_info.value.code == FaultCode.USER_ERROR
        assert "universe" in exc_info.value.reason

    def test_validate_code_accepts(self, policy):
        assert policy.validate_code(FaultCode.WARNING) == 2


class TestPolicyValidation:

    def test_disjoint_required(self):
        with pytest.raises(ConfigurationError) as exc_info:
            ClassificationPolicy(FaultCode.WARNING | FaultCode.NOTICE, FaultCode.WARNING)
        assert exc_info.value.keys == ["ignore_mask", "background_mask"]
        assert "WARNING" in str(exc_info.value)

    def test_fatal_code_in_mask_rejected(self):
        with pytest.raises(ConfigurationError) as exc_info:
            ClassificationPolicy(FaultCode.ERROR, 0)
        assert exc_info.value.key == "ignore_mask"
        assert "ERROR" in str(exc_info.value)

    def test_out_of_range(self):
        with pytest.raises(ConfigurationError):
            ClassificationPolicy(0, -1)
        with pytest.raises(ConfigurationError):
            ClassificationPolicy(0, 1 << 15)

    def test_bool_rejected(self):
        with pytest.raises(ConfigurationError):
            ClassificationPolicy(True, 0)

    def test_empty_masks_allowed(self):
        policy = ClassificationPolicy(0, 0)
        assert policy.classify(FaultCode.NOTICE) is SeverityTier.TERMINAL

    def test_repr(self, policy):
        assert repr(policy) == (
            f"ClassificationPolicy(ignore_mask={DEFAULT_IGNORE_MASK}, "
            f"background_mask={DEFAULT_BACKGROUND_MASK})"
        )
