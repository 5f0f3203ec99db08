"""Exception types raised while analyzing a source."""
from __future__ import annotations

from typing import List, Optional


class DesyncError(RuntimeError):
    """Base class for failures that abandon a single source's analysis."""

    def __init__(self, *args: object) -> None:
        super().__init__(*args)
        # findings gathered before the failure, e.g. a packet-count mismatch
        self.notes: List[str] = []


class ProbeError(DesyncError):
    """FFprobe/FFmpeg could not be run or exited with a non-zero status."""

    def __init__(self, message: str, *, returncode: Optional[int] = None, output: str = '') -> None:
        super().__init__(message)
        self.returncode = returncode
        self.output = output


class ProbeParseError(DesyncError):
    """Probe output lacked a required timestamp or carried a malformed one."""


class InsufficientPacketsError(DesyncError):
    """Too few comparable packets for the requested metric."""

    def __init__(self, required: int, available: int) -> None:
        super().__init__(
            f'Not enough packets to calculate metric (need {required}, have {available})'
        )
        self.required = required
        self.available = available


class SourceListError(DesyncError):
    """Source CSV could not be interpreted."""
