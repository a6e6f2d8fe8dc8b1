"""
Reconciliation loop for released PersistentVolumes.

One pass lists the volumes, asks the decision engine about each one and
applies at most one effect per volume:
- SCHEDULE_FOR -> write the deletion marker
- RECLAIM_NOW -> set reclaim policy to Delete
- NO_ACTION -> nothing

Volumes are processed sequentially and independently. A failed write is
recorded against that volume and the pass moves on; nothing is retried
within a pass; the next scheduled run picks it up again. Every effect is
idempotent, so an interrupted pass is safe to resume.
"""

import logging
from collections.abc import Callable, Iterable
from datetime import datetime

from .clock import ReclaimClock, ensure_utc
from .engine import ReclaimDecisionEngine
from .errors import StoreWriteError
from .ledger import AnnotationLedger
from .models import Decision, DecisionKind, PassSummary, VolumeSnapshot
from .store import VolumeStore

logger = logging.getLogger(__name__)


class ReconciliationLoop:
    """Applies engine decisions to a set of volumes"""

    def __init__(
        self,
        engine: ReclaimDecisionEngine,
        ledger: AnnotationLedger,
        dry_run: bool = False
    ):
        self.engine = engine
        self.ledger = ledger
        self.dry_run = dry_run

    def run_pass(
        self,
        volumes: Iterable[VolumeSnapshot],
        now: datetime,
        should_stop: Callable[[], bool] | None = None
    ) -> PassSummary:
        """
        Evaluate and act on every volume once.

        Args:
            volumes: Snapshots listed for this pass
            now: The instant held fixed for the whole pass
            should_stop: Polled before each volume; returning True ends
                the pass early without touching the remaining volumes

        Returns:
            PassSummary with per-outcome counts
        """
        now = ensure_utc(now)
        summary = PassSummary(dry_run=self.dry_run)
        prefix = "[DRY RUN] " if self.dry_run else ""

        for volume in volumes:
            if should_stop is not None and should_stop():
                logger.warning(
                    f"Stop requested, ending pass after {summary.total} volume(s)"
                )
                summary.interrupted = True
                break

            summary.total += 1

            try:
                decision = self.engine.decide(volume, now)
            except Exception as e:
                # decide() is total; anything escaping it is a bug for this volume only
                logger.error(f"Failed to evaluate volume {volume.name}: {e}", exc_info=True)
                summary.record_failure(volume.name, str(e))
                continue

            self._log_decision(volume, decision, prefix)

            if decision.kind == DecisionKind.NO_ACTION:
                summary.skipped += 1
                continue

            try:
                if not self.dry_run:
                    self._apply(volume, decision)
            except StoreWriteError as e:
                logger.error(f"Failed to apply decision to volume {volume.name}: {e}")
                summary.record_failure(volume.name, str(e))
                continue
            except Exception as e:
                logger.error(
                    f"Unexpected error applying decision to volume {volume.name}: {e}",
                    exc_info=True
                )
                summary.record_failure(volume.name, str(e))
                continue

            if decision.kind == DecisionKind.SCHEDULE_FOR:
                summary.scheduled += 1
            else:
                summary.reclaimed += 1

        return summary

    def _apply(self, volume: VolumeSnapshot, decision: Decision) -> None:
        if decision.kind == DecisionKind.SCHEDULE_FOR:
            self.ledger.write_marker(volume, decision.scheduled_for)
        elif decision.kind == DecisionKind.RECLAIM_NOW:
            self.ledger.set_reclaim_policy_delete(volume)

    def _log_decision(self, volume: VolumeSnapshot, decision: Decision, prefix: str) -> None:
        if decision.kind == DecisionKind.NO_ACTION:
            if self.engine.in_scope(volume):
                logger.info(f"{prefix}Volume {volume.name}: no action ({decision.reason})")
            else:
                logger.debug(f"{prefix}Volume {volume.name}: out of scope ({decision.reason})")
        elif decision.kind == DecisionKind.SCHEDULE_FOR:
            logger.info(
                f"{prefix}Volume {volume.name}: scheduling deletion for "
                f"{decision.scheduled_for.isoformat()} ({decision.reason})"
            )
        else:
            logger.info(f"{prefix}Volume {volume.name}: reclaiming now ({decision.reason})")


def reconcile(
    store: VolumeStore,
    loop: ReconciliationLoop,
    clock: ReclaimClock,
    storage_class_name: str | None = None,
    should_stop: Callable[[], bool] | None = None
) -> PassSummary:
    """
    Run one complete reconciliation pass against the volume store.

    Raises:
        StoreReadError: if the volumes cannot be listed; no decisions are made
    """
    now = clock.now()
    logger.info(f"Starting reclaim pass at {now.isoformat()}")

    volumes = store.list_volumes(storage_class_name)
    logger.info(f"Found {len(volumes)} persistent volume(s) to evaluate")

    summary = loop.run_pass(volumes, now, should_stop=should_stop)

    logger.info(
        f"Reclaim pass complete: {summary.scheduled} scheduled, "
        f"{summary.reclaimed} reclaimed, {summary.skipped} skipped, "
        f"{summary.failed} failed"
    )
    if summary.failures:
        logger.warning(f"Volumes with failed updates: {sorted(summary.failures)}")
    if not summary.interrupted:
        logger.info("All existing PersistentVolumes have been processed")

    return summary
