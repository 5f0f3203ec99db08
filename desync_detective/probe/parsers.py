"""Parsing helpers for FFprobe output.

Field positions of the `-show_frames -of csv=p=0` schema are encoded only in
`_FRAME_CSV_RE`; everything downstream works with `TrackSample` objects.
"""
from __future__ import annotations

import json
import re
from typing import List, Tuple

from ..errors import ProbeParseError
from ..models.core import Packet, ProbeFrame, TrackSample

# skip four fields, capture pts_time, skip five fields, capture duration
_FRAME_CSV_RE = re.compile(r"^(?:[\w.]+,){4}([^,\r\n]+),(?:[\w.]+,){5}([^,\r\n]+)", re.MULTILINE)
_VIDEO_START_RE = re.compile(r"Stream #\d+:\d+.*Video.*start:?\s+([\d.]+)")
_AUDIO_START_RE = re.compile(r"Stream #\d+:\d+.*Audio.*start:?\s+([\d.]+)")


def parse_frames_csv(text: str, track: str) -> TrackSample:
    """Build a `TrackSample` from per-frame CSV lines.

    Lines that do not match the schema, or whose timestamp/duration fields are
    not numbers, are dropped; partial trailing lines are common on live
    captures.
    """

    packets: List[Packet] = []
    for match in _FRAME_CSV_RE.finditer(text):
        try:
            pts_time = float(match.group(1))
            duration = float(match.group(2))
        except ValueError:
            continue
        packets.append(
            Packet(
                sequence_number=len(packets) + 1,
                presentation_time=pts_time,
                duration=duration,
            )
        )
    return TrackSample(track=track, packets=tuple(packets))


def parse_frames_json(text: str) -> List[ProbeFrame]:
    """Parse a `{"frames": [...]}` payload, skipping unusable entries."""

    try:
        entries = _frame_entries(text)
    except ProbeParseError:
        return []
    frames: List[ProbeFrame] = []
    for entry in entries:
        try:
            frames.append(_to_frame(entry))
        except ProbeParseError:
            continue
    return frames


def first_frame(text: str) -> ProbeFrame:
    """Return the first frame entry of a JSON payload; it must carry a usable `pts_time`."""

    entries = _frame_entries(text)
    if not entries:
        raise ProbeParseError('Probe output contains no frames')
    return _to_frame(entries[0])


def first_frame_time(text: str) -> float:
    return first_frame(text).pts_time


def _frame_entries(text: str) -> list:
    try:
        data = json.loads(text)
    except ValueError as exc:
        raise ProbeParseError('Probe output is not valid JSON') from exc
    if not isinstance(data, dict):
        raise ProbeParseError('Probe output is not a JSON object')
    frames = data.get('frames') or []
    if not isinstance(frames, list):
        raise ProbeParseError("Probe output 'frames' is not a list")
    return frames


def _to_frame(entry: object) -> ProbeFrame:
    raw = entry.get('pts_time') if isinstance(entry, dict) else None
    try:
        pts_time = float(raw)
    except (TypeError, ValueError) as exc:
        raise ProbeParseError(f'Cannot parse pts_time {raw!r}') from exc
    try:
        stream_index = int(entry.get('stream_index', 0))
    except (TypeError, ValueError):
        stream_index = 0
    return ProbeFrame(stream_index=stream_index, pts_time=pts_time)


def parse_stream_start_times(text: str) -> Tuple[float, float]:
    """Extract (video_start, audio_start) from the stream listing of `ffprobe <url>`."""

    return (
        _match_start(_VIDEO_START_RE, text, 'video'),
        _match_start(_AUDIO_START_RE, text, 'audio'),
    )


def _match_start(pattern: re.Pattern, text: str, track: str) -> float:
    match = pattern.search(text)
    if not match:
        raise ProbeParseError(f'Could not find {track} stream start time')
    try:
        return float(match.group(1))
    except ValueError as exc:
        raise ProbeParseError(
            f'Error parsing {track} start time {match.group(1)!r}'
        ) from exc
