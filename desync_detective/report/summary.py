"""Text rendering of per-source analyses and the batch summary."""
from __future__ import annotations

from pathlib import Path
from typing import Iterable, List, Sequence

from ..analysis.calculator import DriftStats, TrackDiffRow
from ..config.schema import METHOD_DRIFT, METHOD_FIRST_PACKETS, METHOD_START_DIFF, METHOD_TRACK_DIFF
from ..models.result import BatchReport, SourceOutcome, SourceVerdict, Verdict

_VERDICT_TEXT = {
    Verdict.ALIGNED: 'Start times are aligned',
    Verdict.SMALL_DIFFERENCE: 'Small start time difference',
    Verdict.MISMATCH: 'START TIME MISMATCH',
    Verdict.IN_SYNC: 'Tracks in sync',
    Verdict.FIXED_OFFSET: 'FIXED OFFSET (no drift)',
    Verdict.DRIFT_DETECTED: 'DRIFT DETECTED',
    Verdict.NO_SIGNIFICANT_DRIFT: 'No significant drift',
    Verdict.DESYNCHRONIZED: 'Tracks are desynced',
}


def describe_verdict(verdict: Verdict) -> str:
    return _VERDICT_TEXT[verdict]


def format_table(headers: Sequence[str], rows: Iterable[Sequence[str]]) -> List[str]:
    """Left-aligned columns padded to the widest cell."""

    body = [list(row) for row in rows]
    widths = [len(h) for h in headers]
    for row in body:
        for idx, cell in enumerate(row):
            widths[idx] = max(widths[idx], len(cell))
    lines = ['  '.join(h.ljust(w) for h, w in zip(headers, widths)).rstrip()]
    lines.append('  '.join('-' * w for w in widths))
    for row in body:
        lines.append('  '.join(cell.ljust(w) for cell, w in zip(row, widths)).rstrip())
    return lines


def track_diff_table(rows: Sequence[TrackDiffRow]) -> List[str]:
    return format_table(
        ('#', 'Video PTS time', 'Video duration', 'Audio PTS time', 'Audio duration', 'diff'),
        (
            (
                str(row.number),
                f'{row.video_pts:.6f}',
                f'{row.video_duration:.6f}',
                f'{row.audio_pts:.6f}',
                f'{row.audio_duration:.6f}',
                f'{row.diff:.6f}',
            )
            for row in rows
        ),
    )


def drift_table(stats: DriftStats) -> List[str]:
    return format_table(
        ('#', 'Video PTS time', 'Audio PTS time', 'Diff', 'Drift from prev'),
        (
            (
                str(row.number),
                f'{row.video_pts:.3f}',
                f'{row.audio_pts:.3f}',
                f'{row.audio_delta:.3f}',
                f'{row.drift_from_previous:.4f}',
            )
            for row in stats.rows
        ),
    )


def format_outcome(outcome: SourceOutcome) -> List[str]:
    """Lines describing one source's analysis."""

    source = outcome.source
    lines = [f'=== {source.label or "-"} | {source.uri} ({outcome.method}) ===']
    for note in outcome.notes:
        lines.append(f'  note: {note}')
    if not outcome.ok:
        lines.append(f'  FAILED ({outcome.error_kind}): {outcome.error}')
        return lines

    if outcome.method == METHOD_TRACK_DIFF:
        lines.append(f'Analyzing {len(outcome.track_rows)} packet pairs')
        lines.extend(track_diff_table(outcome.track_rows))
        lines.append(f'Average diff: {outcome.result.primary_metric:.6f} seconds')
    elif outcome.method == METHOD_DRIFT and outcome.drift is not None:
        stats = outcome.drift
        lines.append(f'Analyzing {stats.packet_count} packet pairs')
        lines.extend(drift_table(stats))
        lines.append(f'First PTS diff:      {stats.first_diff:.3f} seconds')
        lines.append(f'Last PTS diff:       {stats.last_diff:.3f} seconds')
        lines.append(f'Average PTS diff:    {stats.average_diff:.3f} seconds')
        lines.append(f'Total drift change:  {stats.total_drift_change:.3f} seconds')
        lines.append(f'Drift per packet:    {stats.drift_rate:.6f} seconds')
        lines.append(f'Duration diff:       {stats.total_duration_diff:.3f} seconds')
    elif outcome.method == METHOD_START_DIFF:
        lines.append(f'Video start time: {outcome.timestamps["video_start"]:.6f} seconds')
        lines.append(f'Audio start time: {outcome.timestamps["audio_start"]:.6f} seconds')
        lines.append(f'Difference:       {outcome.result.primary_metric:.6f} seconds')
    elif outcome.method == METHOD_FIRST_PACKETS:
        lines.append(f'First video packet: {outcome.timestamps["video_first_pts"]:.2f}')
        lines.append(f'First audio packet: {outcome.timestamps["audio_first_pts"]:.2f}')

    if outcome.verdict is not None:
        lines.append(f'Verdict: {describe_verdict(outcome.verdict)}')
    return lines


def format_batch_summary(report: BatchReport) -> List[str]:
    lines = ['Batch summary:']
    if not report.summary and not report.failures:
        lines.append('  (no sources analyzed)')
    for entry in report.summary:
        lines.append(_format_summary_entry(entry))
    for outcome in report.failures:
        lines.append(f'  {outcome.source.label or "-"} {outcome.source.uri}: FAILED ({outcome.error})')
    return lines


def _format_summary_entry(entry: SourceVerdict) -> str:
    result = entry.result
    label = result.source_label or '-'
    return (
        f'  {label} {result.source_identifier}: {describe_verdict(entry.verdict)} '
        f'(diff={result.primary_metric:.3f}s)'
    )


def write_text_summary(path: Path, report: BatchReport) -> None:
    lines: List[str] = ['Desync Detective Analysis Summary', f'Method: {report.method}', '']
    for outcome in report.outcomes:
        lines.extend(format_outcome(outcome))
        lines.append('')
    lines.extend(format_batch_summary(report))
    path.write_text('\n'.join(lines) + '\n', encoding='utf-8')
