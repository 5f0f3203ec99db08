"""Source list discovery helpers."""
from __future__ import annotations

import csv
import logging
from pathlib import Path
from typing import List

from ..errors import SourceListError
from ..models.core import Source

logger = logging.getLogger(__name__)


def load_sources_csv(path: Path) -> List[Source]:
    """Read cameras from a `name,uri,apart` CSV export."""

    if not path.exists():
        raise SourceListError(f"Missing source list: {path}")
    sources: List[Source] = []
    with path.open('r', encoding='utf-8', errors='replace', newline='') as handle:
        reader = csv.DictReader(handle, skipinitialspace=True)
        fields = [name.strip().lower() for name in reader.fieldnames or []]
        if 'uri' not in fields:
            raise SourceListError(f"{path.name} has no 'uri' column")
        reader.fieldnames = fields
        for line_no, row in enumerate(reader, start=2):
            uri = (row.get('uri') or '').strip()
            if not uri:
                logger.warning('Skipping %s:%d (no uri)', path.name, line_no)
                continue
            sources.append(
                Source(
                    name=(row.get('name') or '').strip() or uri,
                    uri=uri,
                    apartment=(row.get('apart') or '').strip(),
                )
            )
    logger.info('Loaded %d source(s) from %s', len(sources), path.name)
    return sources


def single_source(uri: str) -> Source:
    return Source(name=uri, uri=uri, apartment='')
