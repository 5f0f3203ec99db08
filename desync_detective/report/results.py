"""JSON reporting helpers."""
from __future__ import annotations

import json
from dataclasses import asdict
from pathlib import Path
from typing import Dict, Optional

from ..models.result import BatchReport, DiffResult, SourceOutcome, SourceVerdict


def write_batch_json(path: Path, report: BatchReport) -> None:
    """Emit every source outcome plus the batch summary."""

    payload = {
        'method': report.method,
        'counts': {
            'sources': len(report.outcomes),
            'failed': len(report.failures),
            'results': len(report.summary),
        },
        'outcomes': [_outcome_to_dict(outcome) for outcome in report.outcomes],
        'summary': [_verdict_to_dict(entry) for entry in report.summary],
    }
    _write_json(path, payload)


def _outcome_to_dict(outcome: SourceOutcome) -> Dict[str, object]:
    return {
        'name': outcome.source.name,
        'uri': outcome.source.uri,
        'apartment': outcome.source.apartment,
        'ok': outcome.ok,
        'verdict': outcome.verdict.value if outcome.verdict else None,
        'result': _result_to_dict(outcome.result),
        'timestamps': dict(outcome.timestamps),
        'notes': list(outcome.notes),
        'error': outcome.error,
        'error_kind': outcome.error_kind,
    }


def _result_to_dict(result: Optional[DiffResult]) -> Optional[Dict[str, object]]:
    if result is None:
        return None
    return asdict(result)


def _verdict_to_dict(entry: SourceVerdict) -> Dict[str, object]:
    return {
        'apartment': entry.result.source_label,
        'uri': entry.result.source_identifier,
        'diff': entry.result.primary_metric,
        'verdict': entry.verdict.value,
    }


def _write_json(path: Path, payload: Dict[str, object]) -> None:
    path.write_text(json.dumps(payload, indent=2), encoding='utf-8')
