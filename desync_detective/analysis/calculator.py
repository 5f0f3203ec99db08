"""Timing differentials between a video and an audio track sample."""
from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Tuple

from ..errors import InsufficientPacketsError
from ..models.core import TrackSample


@dataclass(frozen=True)
class TrackDiffRow:
    """One aligned video/audio packet pair."""

    number: int
    video_pts: float
    video_duration: float
    audio_pts: float
    audio_duration: float
    diff: float


@dataclass(frozen=True)
class DriftRow:
    """One row of the drift table: audio delta and its change from the previous row."""

    number: int
    video_pts: float
    audio_pts: float
    audio_delta: float
    drift_from_previous: float


@dataclass(frozen=True)
class DriftStats:
    """Everything derived from the audio deltas of a compared range."""

    packet_count: int
    first_diff: float
    last_diff: float
    average_diff: float
    total_drift_change: float
    drift_rate: float
    video_duration: float
    audio_duration: float
    rows: Tuple[DriftRow, ...]

    @property
    def total_duration_diff(self) -> float:
        return self.video_duration - self.audio_duration

    @property
    def duration_diff_rate(self) -> float:
        return self.total_duration_diff / self.packet_count


def comparable_packets(video: TrackSample, audio: TrackSample) -> int:
    return min(len(video), len(audio))


def packet_count_mismatch(video: TrackSample, audio: TrackSample) -> Optional[str]:
    """Describe a packet-count imbalance, or None when the tracks match."""

    if len(video) > len(audio):
        return 'Not enough audio packets. Possible desync'
    if len(video) < len(audio):
        return 'Not enough video packets. Possible desync'
    return None


def track_diff_rows(video: TrackSample, audio: TrackSample) -> List[TrackDiffRow]:
    """Pair packets by index over the overlapping range."""

    rows: List[TrackDiffRow] = []
    for idx in range(comparable_packets(video, audio)):
        v = video[idx]
        a = audio[idx]
        rows.append(
            TrackDiffRow(
                number=v.sequence_number,
                video_pts=v.presentation_time,
                video_duration=v.duration,
                audio_pts=a.presentation_time,
                audio_duration=a.duration,
                diff=abs(v.presentation_time - a.presentation_time),
            )
        )
    return rows


def mean_absolute_diff(video: TrackSample, audio: TrackSample) -> float:
    """Mean of |video[i].pts - audio[i].pts| over the overlapping range."""

    full_packets = comparable_packets(video, audio)
    if full_packets < 1:
        raise InsufficientPacketsError(required=1, available=full_packets)
    total = sum(
        abs(video[idx].presentation_time - audio[idx].presentation_time)
        for idx in range(full_packets)
    )
    return total / full_packets


def audio_pts_deltas(audio: TrackSample, count: int) -> List[float]:
    """Successive PTS deltas of the first `count` audio packets; the first is 0."""

    deltas = [0.0] * count
    for idx in range(1, count):
        deltas[idx] = audio[idx].presentation_time - audio[idx - 1].presentation_time
    return deltas


def drift_stats(video: TrackSample, audio: TrackSample) -> DriftStats:
    """Compute drift over the overlapping range; needs at least two packet pairs."""

    full_packets = comparable_packets(video, audio)
    if full_packets < 2:
        raise InsufficientPacketsError(required=2, available=full_packets)

    deltas = audio_pts_deltas(audio, full_packets)
    rows: List[DriftRow] = []
    for idx, delta in enumerate(deltas):
        drift = delta - deltas[idx - 1] if idx > 0 else 0.0
        rows.append(
            DriftRow(
                number=audio[idx].sequence_number,
                video_pts=video[idx].presentation_time,
                audio_pts=audio[idx].presentation_time,
                audio_delta=delta,
                drift_from_previous=drift,
            )
        )

    total_drift_change = deltas[-1] - deltas[0]
    return DriftStats(
        packet_count=full_packets,
        first_diff=deltas[0],
        last_diff=deltas[-1],
        average_diff=sum(deltas) / full_packets,
        total_drift_change=total_drift_change,
        drift_rate=total_drift_change / (full_packets - 1),
        video_duration=sum(video[idx].duration for idx in range(full_packets)),
        audio_duration=sum(audio[idx].duration for idx in range(full_packets)),
        rows=tuple(rows),
    )


def start_offset(video_start: float, audio_start: float) -> float:
    return video_start - audio_start


def first_packet_gap(video_first: float, audio_first: float) -> float:
    return abs(video_first - audio_first)
