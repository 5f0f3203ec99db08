from pathlib import Path

from desync_detective.analysis import calculator
from desync_detective.models.core import AUDIO, VIDEO, Packet, Source, TrackSample
from desync_detective.models.result import BatchReport, DiffResult, SourceOutcome, SourceVerdict, Verdict
from desync_detective.report.summary import format_outcome, format_table, write_text_summary


def _sample(track: str, times) -> TrackSample:
    return TrackSample(
        track=track,
        packets=tuple(Packet(idx, t, 0.04) for idx, t in enumerate(times, start=1)),
    )


def _source() -> Source:
    return Source(name='hall', uri='rtsp://hall', apartment='apt-3')


def test_format_table_pads_columns() -> None:
    lines = format_table(('#', 'value'), [('1', '0.5'), ('10', '12.25')])

    assert lines[0] == '#   value'
    assert lines[1] == '--  -----'
    assert lines[3] == '10  12.25'


def test_format_outcome_drift_block() -> None:
    video = _sample(VIDEO, [0.0, 0.5, 1.0])
    audio = _sample(AUDIO, [0.0, 0.5, 1.7])
    stats = calculator.drift_stats(video, audio)
    outcome = SourceOutcome(
        source=_source(),
        method='drift',
        result=DiffResult('apt-3', 'rtsp://hall', stats.total_drift_change, 'drift'),
        verdict=Verdict.DRIFT_DETECTED,
        drift=stats,
    )

    text = '\n'.join(format_outcome(outcome))

    assert 'Analyzing 3 packet pairs' in text
    assert 'Drift from prev' in text
    assert 'Total drift change:  1.200 seconds' in text
    assert 'Verdict: DRIFT DETECTED' in text


def test_format_outcome_failure() -> None:
    outcome = SourceOutcome(
        source=_source(),
        method='trackdiff',
        error='ffprobe failed (rc=1)',
        error_kind='ProbeError',
    )

    lines = format_outcome(outcome)

    assert lines[-1] == '  FAILED (ProbeError): ffprobe failed (rc=1)'


def test_write_text_summary_lists_sources(tmp_path: Path) -> None:
    video = _sample(VIDEO, [0.0, 0.6])
    audio = _sample(AUDIO, [0.0, 0.5])
    result = DiffResult('apt-3', 'rtsp://hall', 0.05, 'trackdiff')
    outcome = SourceOutcome(
        source=_source(),
        method='trackdiff',
        result=result,
        verdict=Verdict.IN_SYNC,
        track_rows=calculator.track_diff_rows(video, audio),
        notes=['Not enough audio packets. Possible desync'],
    )
    report = BatchReport(
        method='trackdiff',
        outcomes=[outcome],
        summary=[SourceVerdict(result=result, verdict=Verdict.IN_SYNC)],
    )

    path = tmp_path / 'summary.txt'
    write_text_summary(path, report)

    text = path.read_text(encoding='utf-8')
    assert 'Method: trackdiff' in text
    assert 'Video PTS time' in text
    assert 'note: Not enough audio packets' in text
    assert 'apt-3 rtsp://hall: Tracks in sync (diff=0.050s)' in text


def test_write_text_summary_empty(tmp_path: Path) -> None:
    path = tmp_path / 'summary.txt'
    write_text_summary(path, BatchReport(method='startdiff', outcomes=[], summary=[]))

    assert '(no sources analyzed)' in path.read_text(encoding='utf-8')
