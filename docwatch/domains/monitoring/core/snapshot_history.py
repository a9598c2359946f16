"""Two-slot snapshot history of a monitored document."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from docwatch.models.snapshot import Snapshot

MAX_RETAINED_SNAPSHOTS = 2


@dataclass
class SnapshotHistory:
    """The two most recent snapshots of one document.

    ``push`` moves the newer snapshot into the older slot and evicts whatever
    was there. Snapshots must arrive in ``fetched_at`` order.
    """

    older: Snapshot | None = None
    newer: Snapshot | None = None

    @classmethod
    def from_snapshots(cls, snapshots: list[Snapshot]) -> SnapshotHistory:
        """Build a history from snapshots in any order, keeping the latest two."""
        history = cls()
        ordered = sorted(snapshots, key=lambda snapshot: snapshot.fetched_at)
        for snapshot in ordered[-MAX_RETAINED_SNAPSHOTS:]:
            history.push(snapshot)
        return history

    @property
    def is_empty(self) -> bool:
        return self.newer is None

    @property
    def is_complete(self) -> bool:
        """Both slots are filled, so a difference can be computed."""
        return self.older is not None and self.newer is not None

    def push(self, snapshot: Snapshot) -> Snapshot | None:
        """Make ``snapshot`` the newer slot and return the evicted snapshot.

        Raises ValueError when ``snapshot`` is older than the current newer
        slot, or belongs to a different document.
        """
        if self.newer is not None:
            if snapshot.document_key != self.newer.document_key:
                msg = "snapshot belongs to a different document"
                raise ValueError(msg)
            if snapshot.fetched_at < self.newer.fetched_at:
                msg = "snapshot is older than the most recent snapshot"
                raise ValueError(msg)
        evicted = self.older
        self.older = self.newer
        self.newer = snapshot
        return evicted

    def snapshots(self) -> list[Snapshot]:
        """Retained snapshots, oldest first."""
        return [snapshot for snapshot in (self.older, self.newer) if snapshot is not None]
