"""Configuration dataclasses for Desync Detective."""
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

METHOD_TRACK_DIFF = 'trackdiff'
METHOD_DRIFT = 'drift'
METHOD_FIRST_PACKETS = 'firstpackets'
METHOD_START_DIFF = 'startdiff'
METHODS = (METHOD_TRACK_DIFF, METHOD_DRIFT, METHOD_FIRST_PACKETS, METHOD_START_DIFF)

UNIT_PACKETS = 'packets'
UNIT_SECONDS = 'seconds'


@dataclass(frozen=True)
class Thresholds:
    """Severity cut-offs (seconds) for each analysis mode."""

    start_mismatch: float = 0.1
    start_small_difference: float = 0.01
    drift_change: float = 0.1
    fixed_offset: float = 0.5
    aggregate_drift: float = 1.0
    track_desync: float = 0.5
    first_packet_tolerance: float = 1.0


@dataclass(frozen=True)
class Measurement:
    """How much of the source to read: a packet count or a duration."""

    count: int
    unit: str = UNIT_PACKETS

    def __post_init__(self) -> None:
        if self.unit not in (UNIT_PACKETS, UNIT_SECONDS):
            raise ValueError(f"Unknown measurement unit '{self.unit}'")
        if self.count <= 0:
            raise ValueError('Measurement count must be positive')

    @property
    def read_intervals(self) -> str:
        """FFprobe `-read_intervals` value for this measurement."""

        if self.unit == UNIT_SECONDS:
            return f'%+{self.count}'
        return f'%+#{self.count}'


@dataclass(frozen=True)
class AnalysisConfig:
    """High-level knobs for a batch run."""

    method: str = METHOD_START_DIFF
    measurement: Optional[Measurement] = None
    direct: bool = False
    temp_dir: Path = Path('temp')
    jobs: int = 1
    probe_timeout_s: Optional[float] = None
    thresholds: Thresholds = field(default_factory=Thresholds)

    @property
    def record_length(self) -> int:
        """Length argument handed to the recorder when analyzing a slice."""

        return self.measurement.count if self.measurement else 1
