"""
Volume store: the cluster-side collaborator of the reclaimer.

VolumeStore is the interface the ledger and the reconciliation loop depend
on; KubernetesVolumeStore implements it against the PersistentVolume API.
Patches are partial merges, never full-object replacements.
"""

import logging
from abc import ABC, abstractmethod

from kubernetes import client
from kubernetes.client.rest import ApiException

from .clock import ensure_utc
from .errors import StoreReadError, StoreWriteError
from .models import VolumeSnapshot

logger = logging.getLogger(__name__)

# Page size for list calls against the API server
DEFAULT_PAGE_SIZE = 500


class VolumeStore(ABC):
    """
    Abstract access to PersistentVolumes.

    Implementations:
    - KubernetesVolumeStore: the real cluster API
    - in-memory fakes in the test suite
    """

    @abstractmethod
    def list_volumes(self, storage_class_name: str | None = None) -> list[VolumeSnapshot]:
        """
        List volumes, optionally restricted to one storage class.

        Raises:
            StoreReadError: if the listing cannot be completed
        """
        pass

    @abstractmethod
    def patch_annotations(
        self,
        name: str,
        annotations: dict[str, str],
        resource_version: str | None = None
    ) -> None:
        """
        Merge annotations into a volume.

        When resource_version is given, the patch only applies if the volume
        has not changed since that version was read.

        Raises:
            StoreWriteError: on any failure, including a version conflict
        """
        pass

    @abstractmethod
    def patch_reclaim_policy(
        self,
        name: str,
        policy: str,
        resource_version: str | None = None
    ) -> None:
        """
        Set spec.persistentVolumeReclaimPolicy on a volume.

        Raises:
            StoreWriteError: on any failure, including a version conflict
        """
        pass


def snapshot_from_pv(pv) -> VolumeSnapshot:
    """Convert a V1PersistentVolume into a VolumeSnapshot"""
    metadata = pv.metadata
    spec = pv.spec
    status = pv.status

    return VolumeSnapshot(
        name=metadata.name,
        phase=status.phase if status else None,
        creation_timestamp=ensure_utc(metadata.creation_timestamp),
        storage_class_name=spec.storage_class_name if spec else None,
        annotations=dict(metadata.annotations or {}),
        reclaim_policy=spec.persistent_volume_reclaim_policy if spec else None,
        resource_version=metadata.resource_version,
    )


class KubernetesVolumeStore(VolumeStore):
    """PersistentVolume access through the Kubernetes CoreV1Api"""

    def __init__(self, core_api: client.CoreV1Api, page_size: int = DEFAULT_PAGE_SIZE):
        self.core_api = core_api
        self.page_size = page_size

    def list_volumes(self, storage_class_name: str | None = None) -> list[VolumeSnapshot]:
        volumes = []
        continue_token = None

        try:
            while True:
                kwargs = {"limit": self.page_size}
                if continue_token:
                    kwargs["_continue"] = continue_token

                page = self.core_api.list_persistent_volume(**kwargs)
                for pv in page.items or []:
                    volumes.append(snapshot_from_pv(pv))

                continue_token = page.metadata._continue if page.metadata else None
                if not continue_token:
                    break

        except ApiException as e:
            raise StoreReadError(
                f"Failed to list persistent volumes: {e.status} {e.reason}"
            ) from e
        except Exception as e:
            raise StoreReadError(f"Failed to list persistent volumes: {e}") from e

        logger.debug(f"Listed {len(volumes)} persistent volumes")

        if storage_class_name is None:
            return volumes
        return [v for v in volumes if v.storage_class_name == storage_class_name]

    def _patch(self, name: str, body: dict, what: str) -> None:
        try:
            self.core_api.patch_persistent_volume(name=name, body=body)
        except ApiException as e:
            if e.status == 409:
                message = f"{what} rejected, volume changed since it was read (409 Conflict)"
            elif e.status == 404:
                message = f"{what} failed, volume no longer exists (404)"
            else:
                message = f"{what} failed: {e.status} {e.reason}"
            raise StoreWriteError(name, message, status=e.status) from e
        except Exception as e:
            raise StoreWriteError(name, f"{what} failed: {e}") from e

    def patch_annotations(
        self,
        name: str,
        annotations: dict[str, str],
        resource_version: str | None = None
    ) -> None:
        metadata = {"annotations": dict(annotations)}
        if resource_version:
            metadata["resourceVersion"] = resource_version
        self._patch(name, {"metadata": metadata}, "annotation patch")

    def patch_reclaim_policy(
        self,
        name: str,
        policy: str,
        resource_version: str | None = None
    ) -> None:
        body = {"spec": {"persistentVolumeReclaimPolicy": policy}}
        if resource_version:
            body["metadata"] = {"resourceVersion": resource_version}
        self._patch(name, body, "reclaim policy patch")
