"""
Faultline Testing - helpers for exercising fault handling without
ending the test process.
"""

from .faults import CapturedPresentation, RecordingHalter, RecordingPresenter, make_record

__all__ = [
    "CapturedPresentation",
    "RecordingHalter",
    "RecordingPresenter",
    "make_record",
]
