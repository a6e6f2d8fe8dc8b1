"""
Annotation ledger: the reclaimer's only durable state.

The deletion marker is an RFC3339 timestamp annotation on the volume. It is
written once, when the engine first commits to a schedule, and afterwards
only read. Writes carry the resourceVersion of the snapshot they were
decided from, so a concurrent change turns into a conflict instead of a
silent overwrite.
"""

import logging
from datetime import datetime

from .clock import format_timestamp, parse_timestamp
from .errors import PolicyParseError
from .models import ReclaimPolicy, VolumeSnapshot
from .store import VolumeStore

logger = logging.getLogger(__name__)


class AnnotationLedger:
    """Reads and writes reclaim state on a volume through the volume store"""

    def __init__(self, store: VolumeStore, marker_key: str):
        self.store = store
        self.marker_key = marker_key

    def read_marker(self, volume: VolumeSnapshot) -> datetime | None:
        """
        Read the deletion marker from a volume snapshot.

        Returns:
            The marker instant, or None if absent or not a valid timestamp
        """
        raw = volume.annotations.get(self.marker_key)
        if raw is None:
            return None

        try:
            return parse_timestamp(raw)
        except PolicyParseError as e:
            logger.warning(
                f"Ignoring unparseable deletion marker {self.marker_key}='{raw}' "
                f"on volume {volume.name}: {e}"
            )
            return None

    def write_marker(self, volume: VolumeSnapshot, instant: datetime) -> None:
        """
        Persist the deletion marker on a volume.

        Writing the same instant again leaves the volume unchanged.

        Raises:
            StoreWriteError: if the patch fails or the volume changed meanwhile
        """
        value = format_timestamp(instant)
        if volume.annotations.get(self.marker_key) == value:
            logger.debug(f"Deletion marker on volume {volume.name} already {value}")
            return

        self.store.patch_annotations(
            volume.name,
            {self.marker_key: value},
            resource_version=volume.resource_version,
        )
        logger.info(f"Volume {volume.name} will be deleted at {value}")

    def set_reclaim_policy_delete(self, volume: VolumeSnapshot) -> None:
        """
        Hand the volume to the orchestrator by setting its reclaim policy to Delete.

        Raises:
            StoreWriteError: if the patch fails or the volume changed meanwhile
        """
        if volume.reclaim_policy == ReclaimPolicy.DELETE:
            logger.debug(f"Volume {volume.name} reclaim policy is already {ReclaimPolicy.DELETE}")
            return

        self.store.patch_reclaim_policy(
            volume.name,
            ReclaimPolicy.DELETE,
            resource_version=volume.resource_version,
        )
        logger.info(f"Volume {volume.name} reclaimPolicy set to {ReclaimPolicy.DELETE}")
