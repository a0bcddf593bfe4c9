"""
Sync Statistics - counters describing the outcome of one sync run.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field


@dataclass
class SyncStatistics:
    """
    Counters for one sync run.

    ``deferred`` counts drafts currently parked in the deferred store because
    a referenced resource did not exist; it goes down again when they are
    resolved later in the same run.
    """

    resource_label: str = "resource"
    processed: int = 0
    created: int = 0
    updated: int = 0
    failed: int = 0
    deferred: int = 0
    started_at: float = field(default_factory=time.monotonic)
    finished_at: float | None = None

    def increment_processed(self, count: int = 1) -> None:
        self.processed += count

    def increment_created(self, count: int = 1) -> None:
        self.created += count

    def increment_updated(self, count: int = 1) -> None:
        self.updated += count

    def increment_failed(self, count: int = 1) -> None:
        self.failed += count

    def increment_deferred(self, count: int = 1) -> None:
        self.deferred += count

    def decrement_deferred(self, count: int = 1) -> None:
        self.deferred = max(self.deferred - count, 0)

    def finish(self) -> None:
        self.finished_at = time.monotonic()

    @property
    def elapsed_seconds(self) -> float:
        end = self.finished_at if self.finished_at is not None else time.monotonic()
        return end - self.started_at

    @property
    def unchanged(self) -> int:
        """Processed drafts that needed neither creation nor update."""
        return max(self.processed - self.created - self.updated - self.failed - self.deferred, 0)

    @property
    def plural_label(self) -> str:
        if self.resource_label.endswith("y"):
            return self.resource_label[:-1] + "ies"
        return self.resource_label + "s"

    @property
    def report_message(self) -> str:
        return (
            f"Summary: {self.processed} {self.plural_label} were processed in total "
            f"({self.created} created, {self.updated} updated, {self.failed} failed to sync "
            f"and {self.deferred} waiting for missing references) "
            f"in {self.elapsed_seconds:.2f}s."
        )

    def to_dict(self) -> dict[str, float | int]:
        return {
            "processed": self.processed,
            "created": self.created,
            "updated": self.updated,
            "failed": self.failed,
            "deferred": self.deferred,
            "elapsed_seconds": round(self.elapsed_seconds, 3),
        }
