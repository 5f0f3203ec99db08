"""Data structures describing per-source analysis outcomes."""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Dict, List, Optional, Sequence

from .core import Source

if TYPE_CHECKING:
    from ..analysis.calculator import DriftStats, TrackDiffRow


class Verdict(str, Enum):
    """Severity levels reported by the classifier."""

    ALIGNED = 'aligned'
    SMALL_DIFFERENCE = 'small_difference'
    MISMATCH = 'mismatch'
    IN_SYNC = 'in_sync'
    FIXED_OFFSET = 'fixed_offset'
    DRIFT_DETECTED = 'drift_detected'
    NO_SIGNIFICANT_DRIFT = 'no_significant_drift'
    DESYNCHRONIZED = 'desynchronized'

    @property
    def is_problem(self) -> bool:
        return self in (
            Verdict.MISMATCH,
            Verdict.FIXED_OFFSET,
            Verdict.DRIFT_DETECTED,
            Verdict.DESYNCHRONIZED,
        )


@dataclass(frozen=True)
class DiffResult:
    """Single comparison of one source's video and audio tracks.

    `primary_metric` is the mean absolute pointwise diff (trackdiff), the total
    drift change (drift), the start-time offset (startdiff) or the first-packet
    gap (firstpackets).
    """

    source_label: str
    source_identifier: str
    primary_metric: float
    method: str


@dataclass(frozen=True)
class DriftResult(DiffResult):
    """DiffResult enriched with the derived drift figures."""

    first_diff: float = 0.0
    last_diff: float = 0.0
    average_diff: float = 0.0
    drift_rate: float = 0.0
    packet_count: int = 0
    video_duration: float = 0.0
    audio_duration: float = 0.0
    total_duration_diff: float = 0.0
    duration_diff_rate: float = 0.0


@dataclass(frozen=True)
class SourceVerdict:
    """A recorded result classified by a batch summary rule."""

    result: DiffResult
    verdict: Verdict


@dataclass
class SourceOutcome:
    """Outcome of analyzing one source: a classified result or a failure."""

    source: Source
    method: str
    result: Optional[DiffResult] = None
    verdict: Optional[Verdict] = None
    error: Optional[str] = None
    error_kind: Optional[str] = None
    notes: List[str] = field(default_factory=list)
    track_rows: List[TrackDiffRow] = field(default_factory=list)
    drift: Optional[DriftStats] = None
    timestamps: Dict[str, float] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def failure(cls, source: Source, method: str, exc: Exception) -> 'SourceOutcome':
        return cls(
            source=source,
            method=method,
            error=str(exc),
            error_kind=type(exc).__name__,
            notes=list(getattr(exc, 'notes', ())),
        )


@dataclass
class BatchReport:
    """Top-level output from a batch run."""

    method: str
    outcomes: Sequence[SourceOutcome]
    summary: Sequence[SourceVerdict]

    @property
    def failures(self) -> List[SourceOutcome]:
        return [outcome for outcome in self.outcomes if not outcome.ok]

    @property
    def has_problems(self) -> bool:
        return any(outcome.verdict is not None and outcome.verdict.is_problem for outcome in self.outcomes)
