"""Monitoring domain core -- snapshot retention for monitored documents."""

from __future__ import annotations

from docwatch.domains.monitoring.core.snapshot_history import (
    MAX_RETAINED_SNAPSHOTS,
    SnapshotHistory,
)

__all__ = [
    # snapshot_history
    "MAX_RETAINED_SNAPSHOTS",
    "SnapshotHistory",
]
