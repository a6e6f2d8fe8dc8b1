"""
Reclaim decision engine.

Given a volume snapshot and the pass's "now", decide one of:
- NO_ACTION: out of scope, no policy, already handed over, or still waiting
- RECLAIM_NOW: set the reclaim policy to Delete
- SCHEDULE_FOR(t): persist a deletion marker at t

Rules, in order, for Released volumes of the target storage class:
0. Reclaim policy already Delete -> NO_ACTION, even for a volume young
   enough for rule 2 (it is already handed over)
1. No valid grace period -> NO_ACTION (never touch the volume)
2. Valid immediate-reclaim threshold and now < created + threshold
   -> RECLAIM_NOW (released right after creation, a provisioning-loop artifact)
   A deadline past the end of the calendar skips this check
3. No marker -> SCHEDULE_FOR(now + grace)
   Marker reached -> RECLAIM_NOW
   Marker in the future -> NO_ACTION
   A schedule past the end of the calendar -> NO_ACTION

Once written, the marker is authoritative: a later change of the grace
period annotation does not move it.

decide() performs no writes and never raises on bad annotations; parse
problems are logged and resolve to the conservative branch.
"""

import logging
from datetime import datetime

from .clock import ReclaimClock, ensure_utc
from .config import ReclaimerConfig
from .ledger import AnnotationLedger
from .models import Decision, ReclaimPolicy, VolumePhase, VolumeSnapshot
from .policy import parse_grace_period, parse_immediate_reclaim_threshold

logger = logging.getLogger(__name__)


class ReclaimDecisionEngine:
    """Decides what to do with a single volume in a single pass"""

    def __init__(self, config: ReclaimerConfig, ledger: AnnotationLedger):
        self.config = config
        self.ledger = ledger

    def in_scope(self, volume: VolumeSnapshot) -> bool:
        """True for Released volumes of the configured storage class"""
        return (
            volume.phase == VolumePhase.RELEASED
            and volume.storage_class_name == self.config.storage_class_name
        )

    def decide(self, volume: VolumeSnapshot, now: datetime) -> Decision:
        now = ensure_utc(now)

        if volume.phase != VolumePhase.RELEASED:
            return Decision.no_action(f"phase is {volume.phase}")

        if volume.storage_class_name != self.config.storage_class_name:
            return Decision.no_action(
                f"storage class {volume.storage_class_name} is not "
                f"{self.config.storage_class_name}"
            )

        if volume.reclaim_policy == ReclaimPolicy.DELETE:
            return Decision.no_action("reclaim policy is already Delete")

        annotations = volume.annotations
        grace = parse_grace_period(
            annotations.get(self.config.grace_period_annotation), volume.name
        )
        if grace is None:
            return Decision.no_action("no grace period configured")

        threshold = parse_immediate_reclaim_threshold(
            annotations.get(self.config.immediate_reclaim_annotation), volume.name
        )
        if threshold is not None:
            if volume.creation_timestamp is None:
                logger.warning(
                    f"Volume {volume.name} has no creation timestamp, "
                    f"skipping immediate-reclaim check"
                )
            else:
                try:
                    deadline = ReclaimClock.add_duration(volume.creation_timestamp, threshold)
                except OverflowError:
                    logger.warning(
                        f"Immediate-reclaim threshold {threshold} on volume {volume.name} "
                        f"is out of range, skipping immediate-reclaim check"
                    )
                    deadline = None
                if deadline is not None and ReclaimClock.is_before(now, deadline):
                    return Decision.reclaim_now(
                        f"released less than {threshold} after creation"
                    )

        marker = self.ledger.read_marker(volume)
        if marker is None:
            try:
                scheduled_for = ReclaimClock.add_duration(now, grace)
            except OverflowError:
                logger.warning(
                    f"Grace period {grace} on volume {volume.name} is out of range. "
                    f"Treating policy as disabled."
                )
                return Decision.no_action("grace period out of range")
            return Decision.schedule_for(
                scheduled_for,
                f"grace period of {grace} starts now",
            )

        if not ReclaimClock.is_before(now, marker):
            return Decision.reclaim_now(
                f"marked for deletion at {marker.isoformat()}, which has passed"
            )

        return Decision.no_action(f"waiting until {marker.isoformat()}")
