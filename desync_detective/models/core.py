"""Shared data structures used across the pipeline."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterator, Tuple

VIDEO = 'video'
AUDIO = 'audio'


@dataclass(frozen=True)
class Packet:
    """Timing metadata emitted by FFprobe for a single decoded frame."""

    sequence_number: int
    presentation_time: float
    duration: float


@dataclass(frozen=True)
class TrackSample:
    """Ordered packets of one track from a single probe invocation.

    Packets keep the order in which they appeared in the probe output, which
    is assumed to be chronological.  `sequence_number` counts only the records
    the parser kept, starting at 1.
    """

    track: str
    packets: Tuple[Packet, ...] = field(default_factory=tuple)

    def __len__(self) -> int:
        return len(self.packets)

    def __iter__(self) -> Iterator[Packet]:
        return iter(self.packets)

    def __getitem__(self, index: int) -> Packet:
        return self.packets[index]

    @property
    def presentation_times(self) -> Tuple[float, ...]:
        return tuple(packet.presentation_time for packet in self.packets)


@dataclass(frozen=True)
class ProbeFrame:
    """Single entry of an FFprobe JSON `frames` payload."""

    stream_index: int
    pts_time: float


@dataclass(frozen=True)
class Source:
    """A camera/stream to analyze, grouped by apartment."""

    name: str
    uri: str
    apartment: str = ''

    @property
    def label(self) -> str:
        return self.apartment or self.name
