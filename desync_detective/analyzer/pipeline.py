"""Per-source analysis entry points and the batch driver."""
from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from contextlib import contextmanager
from pathlib import Path
from typing import Callable, Dict, Iterator, List, Optional, Sequence, Tuple

from ..analysis import calculator, classifier
from ..analysis.aggregator import RULE_DESYNC, RULE_DRIFT, Aggregator
from ..config.schema import (
    METHOD_DRIFT,
    METHOD_FIRST_PACKETS,
    METHOD_START_DIFF,
    METHOD_TRACK_DIFF,
    AnalysisConfig,
    Measurement,
)
from ..errors import DesyncError
from ..ffmpeg.commands import AUDIO_SELECTOR, VIDEO_SELECTOR
from ..models.core import AUDIO, VIDEO, Source, TrackSample
from ..models.result import BatchReport, DiffResult, DriftResult, SourceOutcome
from ..probe import parsers

logger = logging.getLogger(__name__)

SUMMARY_RULES = {
    METHOD_TRACK_DIFF: RULE_DESYNC,
    METHOD_DRIFT: RULE_DRIFT,
    METHOD_FIRST_PACKETS: RULE_DRIFT,
    METHOD_START_DIFF: RULE_DRIFT,
}


def analyze_track_diff(
    source: Source,
    config: AnalysisConfig,
    aggregator: Aggregator,
    prober,
) -> SourceOutcome:
    """Mean absolute PTS difference between index-aligned video/audio packets."""

    outcome = SourceOutcome(source=source, method=METHOD_TRACK_DIFF)
    with _carry_notes(outcome):
        video, audio = _probe_track_samples(source, config, prober, outcome)
        outcome.track_rows = calculator.track_diff_rows(video, audio)
        mean_diff = calculator.mean_absolute_diff(video, audio)
    result = DiffResult(
        source_label=source.label,
        source_identifier=source.uri,
        primary_metric=mean_diff,
        method=METHOD_TRACK_DIFF,
    )
    aggregator.append(result)
    outcome.result = result
    outcome.verdict = classifier.classify_track_desync(mean_diff, config.thresholds)
    return outcome


def analyze_drift(
    source: Source,
    config: AnalysisConfig,
    aggregator: Aggregator,
    prober,
) -> SourceOutcome:
    """Change of successive audio PTS deltas over the sampled packets."""

    outcome = SourceOutcome(source=source, method=METHOD_DRIFT)
    with _carry_notes(outcome):
        video, audio = _probe_track_samples(source, config, prober, outcome)
        stats = calculator.drift_stats(video, audio)
    outcome.drift = stats
    result = DriftResult(
        source_label=source.label,
        source_identifier=source.uri,
        primary_metric=stats.total_drift_change,
        method=METHOD_DRIFT,
        first_diff=stats.first_diff,
        last_diff=stats.last_diff,
        average_diff=stats.average_diff,
        drift_rate=stats.drift_rate,
        packet_count=stats.packet_count,
        video_duration=stats.video_duration,
        audio_duration=stats.audio_duration,
        total_duration_diff=stats.total_duration_diff,
        duration_diff_rate=stats.duration_diff_rate,
    )
    aggregator.append(result)
    outcome.result = result
    outcome.verdict = classifier.classify_drift(
        stats.total_drift_change, stats.average_diff, config.thresholds
    )
    return outcome


def analyze_first_packets(
    source: Source,
    config: AnalysisConfig,
    aggregator: Aggregator,
    prober,
) -> SourceOutcome:
    """Compare the timestamps of the first video and first audio frame."""

    outcome = SourceOutcome(source=source, method=METHOD_FIRST_PACKETS)
    with _source_path(source, config, prober, align=True) as path:
        video_text = prober.probe_first_frame(path, VIDEO_SELECTOR)
        audio_text = prober.probe_first_frame(path, AUDIO_SELECTOR)
    video_frame = parsers.first_frame(video_text)
    audio_frame = parsers.first_frame(audio_text)
    logger.debug(
        'First frames of %s: video stream %d at %.6f, audio stream %d at %.6f',
        source.uri, video_frame.stream_index, video_frame.pts_time,
        audio_frame.stream_index, audio_frame.pts_time,
    )
    video_first = video_frame.pts_time
    audio_first = audio_frame.pts_time
    outcome.timestamps = {'video_first_pts': video_first, 'audio_first_pts': audio_first}
    result = DiffResult(
        source_label=source.label,
        source_identifier=source.uri,
        primary_metric=calculator.first_packet_gap(video_first, audio_first),
        method=METHOD_FIRST_PACKETS,
    )
    aggregator.append(result)
    outcome.result = result
    outcome.verdict = classifier.classify_first_packets(video_first, audio_first, config.thresholds)
    return outcome


def analyze_start_diff(
    source: Source,
    config: AnalysisConfig,
    aggregator: Aggregator,
    prober,
) -> SourceOutcome:
    """Compare the advertised start times of the video and audio streams."""

    outcome = SourceOutcome(source=source, method=METHOD_START_DIFF)
    # stream metadata is always read from the source itself
    text = prober.probe_stream_info(source.uri)
    video_start, audio_start = parsers.parse_stream_start_times(text)
    diff = calculator.start_offset(video_start, audio_start)
    outcome.timestamps = {'video_start': video_start, 'audio_start': audio_start}
    result = DiffResult(
        source_label=source.label,
        source_identifier=source.uri,
        primary_metric=diff,
        method=METHOD_START_DIFF,
    )
    aggregator.append(result)
    outcome.result = result
    outcome.verdict = classifier.classify_start_offset(diff, config.thresholds)
    return outcome


AnalyzeFn = Callable[[Source, AnalysisConfig, Aggregator, object], SourceOutcome]

ENTRY_POINTS: Dict[str, AnalyzeFn] = {
    METHOD_TRACK_DIFF: analyze_track_diff,
    METHOD_DRIFT: analyze_drift,
    METHOD_FIRST_PACKETS: analyze_first_packets,
    METHOD_START_DIFF: analyze_start_diff,
}


def analyze_source(
    source: Source,
    config: AnalysisConfig,
    aggregator: Aggregator,
    prober,
) -> SourceOutcome:
    """Run the configured method for one source, turning failures into an outcome."""

    analyze = ENTRY_POINTS[config.method]
    logger.info('Analyzing %s (%s) with method %s', source.uri, source.label or '-', config.method)
    try:
        return analyze(source, config, aggregator, prober)
    except DesyncError as exc:
        logger.error('Analysis of %s failed: %s', source.uri, exc)
        output = getattr(exc, 'output', '')
        if output:
            logger.debug('Probe output for %s:\n%s', source.uri, output)
        return SourceOutcome.failure(source, config.method, exc)


def run_batch(
    sources: Sequence[Source],
    config: AnalysisConfig,
    aggregator: Aggregator,
    prober,
    *,
    on_outcome: Optional[Callable[[SourceOutcome], None]] = None,
) -> BatchReport:
    """Analyze every source and summarize the aggregator afterwards.

    Outcomes keep the input order even when `config.jobs > 1`; `on_outcome`
    is always invoked from the calling thread.
    """

    if config.method not in ENTRY_POINTS:
        raise ValueError(f"Unknown analysis method '{config.method}'")
    if config.method != METHOD_START_DIFF:
        _require_measurement(config)

    outcomes: List[SourceOutcome] = []

    def _collect(outcome: SourceOutcome) -> None:
        outcomes.append(outcome)
        if on_outcome is not None:
            on_outcome(outcome)

    if config.jobs > 1 and len(sources) > 1:
        with ThreadPoolExecutor(max_workers=config.jobs) as pool:
            futures = [
                pool.submit(analyze_source, source, config, aggregator, prober)
                for source in sources
            ]
            for future in futures:
                _collect(future.result())
    else:
        for source in sources:
            _collect(analyze_source(source, config, aggregator, prober))

    rule = SUMMARY_RULES.get(config.method, RULE_DRIFT)
    return BatchReport(
        method=config.method,
        outcomes=outcomes,
        summary=aggregator.summarize(rule),
    )


def _probe_track_samples(
    source: Source,
    config: AnalysisConfig,
    prober,
    outcome: SourceOutcome,
) -> Tuple[TrackSample, TrackSample]:
    measurement = _require_measurement(config)
    with _source_path(source, config, prober, align=False) as path:
        audio_text = prober.probe_frames(path, AUDIO_SELECTOR, measurement.read_intervals)
        video_text = prober.probe_frames(path, VIDEO_SELECTOR, measurement.read_intervals)
    video = parsers.parse_frames_csv(video_text, VIDEO)
    audio = parsers.parse_frames_csv(audio_text, AUDIO)
    logger.info('Found %d video packets and %d audio packets', len(video), len(audio))
    mismatch = calculator.packet_count_mismatch(video, audio)
    if mismatch:
        logger.warning('%s: %s', source.uri, mismatch)
        outcome.notes.append(mismatch)
    return video, audio


def _require_measurement(config: AnalysisConfig) -> Measurement:
    if config.measurement is None:
        raise ValueError(f"Method '{config.method}' needs a packet count or a duration")
    return config.measurement


@contextmanager
def _source_path(
    source: Source,
    config: AnalysisConfig,
    prober,
    *,
    align: bool,
) -> Iterator[str]:
    """Yield what to probe: the source itself or a freshly recorded slice of it."""

    if config.direct:
        yield source.uri
        return
    clip: Path = prober.record_clip(source.uri, config.record_length, align=align)
    try:
        yield str(clip)
    finally:
        try:
            clip.unlink()
        except FileNotFoundError:
            pass
        except OSError as exc:
            logger.warning('Could not remove temp file %s: %s', clip, exc)


@contextmanager
def _carry_notes(outcome: SourceOutcome) -> Iterator[None]:
    """Hand the notes gathered so far to a `DesyncError` leaving the block."""

    try:
        yield
    except DesyncError as exc:
        exc.notes.extend(note for note in outcome.notes if note not in exc.notes)
        raise
