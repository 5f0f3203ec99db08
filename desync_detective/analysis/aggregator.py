"""Batch-level accumulation of per-source diff results."""
from __future__ import annotations

import threading
from typing import Callable, Dict, List, Optional, Tuple

from ..config.schema import Thresholds
from ..models.result import DiffResult, SourceVerdict, Verdict
from . import classifier

RULE_DRIFT = 'drift'
RULE_DESYNC = 'desync'

_RULES: Dict[str, Callable[[float, Optional[Thresholds]], Verdict]] = {
    RULE_DRIFT: classifier.classify_aggregate_drift,
    RULE_DESYNC: classifier.classify_track_desync,
}


class Aggregator:
    """Append-only list of DiffResult entries for one analysis session.

    Appends are serialized with a lock so one instance can be shared by the
    workers of a parallel batch.  `reset()` starts a new session.
    """

    def __init__(self, thresholds: Optional[Thresholds] = None) -> None:
        self.thresholds = thresholds or Thresholds()
        self._results: List[DiffResult] = []
        self._lock = threading.Lock()

    def append(self, result: DiffResult) -> None:
        with self._lock:
            self._results.append(result)

    def reset(self) -> None:
        with self._lock:
            self._results = []

    @property
    def results(self) -> Tuple[DiffResult, ...]:
        with self._lock:
            return tuple(self._results)

    def __len__(self) -> int:
        with self._lock:
            return len(self._results)

    def summarize(self, rule: str = RULE_DRIFT) -> List[SourceVerdict]:
        """Classify every recorded result in insertion order."""

        try:
            classify = _RULES[rule]
        except KeyError:
            choices = ', '.join(sorted(_RULES))
            raise ValueError(f"Unknown summary rule '{rule}'. Choose from: {choices}.") from None
        return [
            SourceVerdict(result=result, verdict=classify(result.primary_metric, self.thresholds))
            for result in self.results
        ]
