"""Tests for the diff/drift calculator."""
from __future__ import annotations

from typing import Sequence

import pytest

from desync_detective.analysis import calculator
from desync_detective.errors import InsufficientPacketsError
from desync_detective.models.core import AUDIO, VIDEO, Packet, TrackSample


def _sample(track: str, times: Sequence[float], *, duration: float = 0.04) -> TrackSample:
    packets = tuple(
        Packet(sequence_number=idx, presentation_time=t, duration=duration)
        for idx, t in enumerate(times, start=1)
    )
    return TrackSample(track=track, packets=packets)


def _audio_from_deltas(deltas: Sequence[float]) -> TrackSample:
    times = []
    t = 0.0
    for delta in deltas:
        t += delta
        times.append(t)
    return _sample(AUDIO, times)


def test_mean_absolute_diff_identical_tracks() -> None:
    video = _sample(VIDEO, [0.0, 0.5, 1.0])
    audio = _sample(AUDIO, [0.0, 0.5, 1.0])

    assert calculator.mean_absolute_diff(video, audio) == 0.0


def test_mean_absolute_diff_growing_offset() -> None:
    video = _sample(VIDEO, [0.0, 0.6, 1.2])
    audio = _sample(AUDIO, [0.0, 0.5, 1.0])

    assert calculator.mean_absolute_diff(video, audio) == pytest.approx(0.3 / 3)


def test_mean_absolute_diff_matches_pointwise_mean() -> None:
    video = _sample(VIDEO, [0.1, 0.2, 0.9, 1.4])
    audio = _sample(AUDIO, [0.3, 0.1, 1.0, 1.0])
    expected = (0.2 + 0.1 + 0.1 + 0.4) / 4

    assert calculator.mean_absolute_diff(video, audio) == pytest.approx(expected)


def test_mean_absolute_diff_depends_on_packet_order() -> None:
    video = _sample(VIDEO, [0.0, 1.0])
    audio = _sample(AUDIO, [0.0, 1.0])
    swapped = _sample(AUDIO, [1.0, 0.0])

    assert calculator.mean_absolute_diff(video, audio) == 0.0
    assert calculator.mean_absolute_diff(video, swapped) == pytest.approx(1.0)


def test_mean_absolute_diff_uses_overlapping_range() -> None:
    video = _sample(VIDEO, [0.0, 0.5, 1.0, 1.5])
    audio = _sample(AUDIO, [0.1, 0.6])

    assert calculator.mean_absolute_diff(video, audio) == pytest.approx(0.1)


def test_mean_absolute_diff_insufficient_packets() -> None:
    video = _sample(VIDEO, [0.0, 0.5])
    audio = _sample(AUDIO, [])

    with pytest.raises(InsufficientPacketsError) as exc:
        calculator.mean_absolute_diff(video, audio)
    assert exc.value.required == 1
    assert exc.value.available == 0


def test_packet_count_mismatch_messages() -> None:
    short = _sample(VIDEO, [0.0])
    long = _sample(AUDIO, [0.0, 0.5])

    assert calculator.packet_count_mismatch(short, long) == 'Not enough video packets. Possible desync'
    assert calculator.packet_count_mismatch(
        _sample(VIDEO, [0.0, 0.5]), _sample(AUDIO, [0.0])
    ) == 'Not enough audio packets. Possible desync'
    assert calculator.packet_count_mismatch(short, _sample(AUDIO, [0.0])) is None


def test_track_diff_rows_pairs_by_index() -> None:
    video = _sample(VIDEO, [0.0, 0.6, 1.2])
    audio = _sample(AUDIO, [0.0, 0.5])

    rows = calculator.track_diff_rows(video, audio)

    assert [row.number for row in rows] == [1, 2]
    assert rows[1].diff == pytest.approx(0.1)
    assert rows[1].audio_duration == pytest.approx(0.04)


def test_drift_stats_detects_growing_delta() -> None:
    audio = _audio_from_deltas([0.0, 0.5, 0.5, 0.5, 1.2])
    video = _sample(VIDEO, [0.0, 0.5, 1.0, 1.5, 2.0])

    stats = calculator.drift_stats(video, audio)

    assert stats.packet_count == 5
    assert stats.first_diff == 0.0
    assert stats.last_diff == pytest.approx(1.2)
    assert stats.total_drift_change == pytest.approx(1.2)
    assert stats.drift_rate == pytest.approx(1.2 / 4)
    assert stats.average_diff == pytest.approx(2.7 / 5)
    assert [row.drift_from_previous for row in stats.rows] == pytest.approx([0.0, 0.5, 0.0, 0.0, 0.7])


def test_drift_stats_durations() -> None:
    video = _sample(VIDEO, [0.0, 0.04, 0.08], duration=0.04)
    audio = _sample(AUDIO, [0.0, 0.04, 0.08], duration=0.03)

    stats = calculator.drift_stats(video, audio)

    assert stats.video_duration == pytest.approx(0.12)
    assert stats.audio_duration == pytest.approx(0.09)
    assert stats.total_duration_diff == pytest.approx(0.03)
    assert stats.duration_diff_rate == pytest.approx(0.01)


@pytest.mark.parametrize('count', [0, 1])
def test_drift_stats_needs_two_packets(count: int) -> None:
    video = _sample(VIDEO, [0.0] * count)
    audio = _sample(AUDIO, [0.0] * count)

    with pytest.raises(InsufficientPacketsError) as exc:
        calculator.drift_stats(video, audio)
    assert exc.value.required == 2
    assert exc.value.available == count


def test_start_offset_is_signed() -> None:
    assert calculator.start_offset(1.4, 1.35) == pytest.approx(0.05)
    assert calculator.start_offset(1.0, 1.5) == pytest.approx(-0.5)


def test_first_packet_gap_is_absolute() -> None:
    assert calculator.first_packet_gap(0.5, 2.0) == pytest.approx(1.5)
