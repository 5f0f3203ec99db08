"""Map scalar diff/drift metrics onto severity verdicts."""
from __future__ import annotations

from typing import Optional

from ..config.schema import Thresholds
from ..models.result import Verdict

_DEFAULT_THRESHOLDS = Thresholds()


def classify_start_offset(diff: float, thresholds: Optional[Thresholds] = None) -> Verdict:
    limits = thresholds or _DEFAULT_THRESHOLDS
    magnitude = abs(diff)
    if magnitude > limits.start_mismatch:
        return Verdict.MISMATCH
    if magnitude > limits.start_small_difference:
        return Verdict.SMALL_DIFFERENCE
    return Verdict.ALIGNED


def classify_drift(
    total_drift_change: float,
    average_diff: float,
    thresholds: Optional[Thresholds] = None,
) -> Verdict:
    """Drift wins over a fixed offset; both are checked on magnitudes."""

    limits = thresholds or _DEFAULT_THRESHOLDS
    if abs(total_drift_change) > limits.drift_change:
        return Verdict.DRIFT_DETECTED
    if abs(average_diff) > limits.fixed_offset:
        return Verdict.FIXED_OFFSET
    return Verdict.IN_SYNC


def classify_aggregate_drift(diff: float, thresholds: Optional[Thresholds] = None) -> Verdict:
    limits = thresholds or _DEFAULT_THRESHOLDS
    if abs(diff) > limits.aggregate_drift:
        return Verdict.DRIFT_DETECTED
    return Verdict.NO_SIGNIFICANT_DRIFT


def classify_track_desync(diff: float, thresholds: Optional[Thresholds] = None) -> Verdict:
    # signed comparison: a negative mean never flags
    limits = thresholds or _DEFAULT_THRESHOLDS
    if diff > limits.track_desync:
        return Verdict.DESYNCHRONIZED
    return Verdict.IN_SYNC


def classify_first_packets(
    video_first: float,
    audio_first: float,
    thresholds: Optional[Thresholds] = None,
) -> Verdict:
    limits = thresholds or _DEFAULT_THRESHOLDS
    if abs(video_first - audio_first) <= limits.first_packet_tolerance:
        return Verdict.IN_SYNC
    return Verdict.DESYNCHRONIZED
