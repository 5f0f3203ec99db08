"""Tests for severity classification thresholds."""
from __future__ import annotations

import pytest

from desync_detective.analysis import classifier
from desync_detective.config.schema import Thresholds
from desync_detective.models.result import Verdict


@pytest.mark.parametrize(
    ('diff', 'expected'),
    [
        (0.0, Verdict.ALIGNED),
        (0.01, Verdict.ALIGNED),
        (-0.01, Verdict.ALIGNED),
        (0.05, Verdict.SMALL_DIFFERENCE),
        (0.1, Verdict.SMALL_DIFFERENCE),
        (-0.1, Verdict.SMALL_DIFFERENCE),
        (0.2, Verdict.MISMATCH),
        (-0.3, Verdict.MISMATCH),
    ],
)
def test_classify_start_offset_boundaries(diff: float, expected: Verdict) -> None:
    assert classifier.classify_start_offset(diff) is expected


def test_classify_drift_prefers_drift_over_offset() -> None:
    assert classifier.classify_drift(1.2, 0.54) is Verdict.DRIFT_DETECTED
    assert classifier.classify_drift(-0.2, 0.0) is Verdict.DRIFT_DETECTED


def test_classify_drift_fixed_offset_and_sync() -> None:
    assert classifier.classify_drift(0.1, 0.6) is Verdict.FIXED_OFFSET
    assert classifier.classify_drift(0.0, -0.7) is Verdict.FIXED_OFFSET
    assert classifier.classify_drift(0.05, 0.5) is Verdict.IN_SYNC


def test_classify_aggregate_drift() -> None:
    assert classifier.classify_aggregate_drift(1.0) is Verdict.NO_SIGNIFICANT_DRIFT
    assert classifier.classify_aggregate_drift(-1.5) is Verdict.DRIFT_DETECTED
    assert classifier.classify_aggregate_drift(1.2) is Verdict.DRIFT_DETECTED


def test_classify_track_desync_is_signed() -> None:
    assert classifier.classify_track_desync(0.5) is Verdict.IN_SYNC
    assert classifier.classify_track_desync(0.51) is Verdict.DESYNCHRONIZED
    assert classifier.classify_track_desync(-2.0) is Verdict.IN_SYNC


def test_classify_first_packets_tolerance() -> None:
    assert classifier.classify_first_packets(0.0, 1.0) is Verdict.IN_SYNC
    assert classifier.classify_first_packets(2.5, 1.0) is Verdict.DESYNCHRONIZED


def test_thresholds_can_be_overridden() -> None:
    strict = Thresholds(track_desync=0.05)
    assert classifier.classify_track_desync(0.1, strict) is Verdict.DESYNCHRONIZED
    assert classifier.classify_track_desync(0.1) is Verdict.IN_SYNC


def test_problem_verdicts() -> None:
    assert Verdict.DRIFT_DETECTED.is_problem
    assert Verdict.DESYNCHRONIZED.is_problem
    assert not Verdict.SMALL_DIFFERENCE.is_problem
    assert not Verdict.IN_SYNC.is_problem
