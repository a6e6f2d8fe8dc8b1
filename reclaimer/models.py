"""
Data types shared by the decision engine, the ledger and the reconciliation loop.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


class VolumePhase:
    """PersistentVolume lifecycle phases as reported in status.phase"""
    PENDING = "Pending"
    AVAILABLE = "Available"
    BOUND = "Bound"
    RELEASED = "Released"
    FAILED = "Failed"


class ReclaimPolicy:
    """Values of spec.persistentVolumeReclaimPolicy"""
    RETAIN = "Retain"
    DELETE = "Delete"
    RECYCLE = "Recycle"


@dataclass(frozen=True)
class VolumeSnapshot:
    """Read-only view of a PersistentVolume, fetched fresh every pass."""
    name: str
    phase: str | None
    creation_timestamp: datetime | None
    storage_class_name: str | None
    annotations: dict[str, str] = field(default_factory=dict)
    reclaim_policy: str | None = None
    resource_version: str | None = None


class DecisionKind(Enum):
    NO_ACTION = "no_action"
    RECLAIM_NOW = "reclaim_now"
    SCHEDULE_FOR = "schedule_for"


@dataclass(frozen=True)
class Decision:
    """
    Outcome of evaluating one volume in one pass.

    Exactly one side effect follows from a decision:
    - SCHEDULE_FOR: write the deletion marker with scheduled_for
    - RECLAIM_NOW: set the reclaim policy to Delete
    - NO_ACTION: nothing
    """
    kind: DecisionKind
    scheduled_for: datetime | None = None
    reason: str = ""

    @classmethod
    def no_action(cls, reason: str = "") -> "Decision":
        return cls(DecisionKind.NO_ACTION, reason=reason)

    @classmethod
    def reclaim_now(cls, reason: str = "") -> "Decision":
        return cls(DecisionKind.RECLAIM_NOW, reason=reason)

    @classmethod
    def schedule_for(cls, at: datetime, reason: str = "") -> "Decision":
        return cls(DecisionKind.SCHEDULE_FOR, scheduled_for=at, reason=reason)


@dataclass
class PassSummary:
    """Aggregated outcome of one reconciliation pass"""
    total: int = 0
    scheduled: int = 0
    reclaimed: int = 0
    skipped: int = 0
    failed: int = 0
    failures: dict[str, str] = field(default_factory=dict)
    dry_run: bool = False
    interrupted: bool = False

    def record_failure(self, volume_name: str, error: str) -> None:
        self.failed += 1
        self.failures[volume_name] = error

    def as_dict(self) -> dict[str, Any]:
        return {
            "total": self.total,
            "scheduled": self.scheduled,
            "reclaimed": self.reclaimed,
            "skipped": self.skipped,
            "failed": self.failed,
            "dry_run": self.dry_run,
            "interrupted": self.interrupted,
        }
