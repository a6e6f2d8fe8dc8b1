"""
Shared pytest fixtures for reclaimer service unit tests.
"""
from dataclasses import replace
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest

from reclaimer.engine import ReclaimDecisionEngine
from reclaimer.errors import StoreWriteError
from reclaimer.ledger import AnnotationLedger
from reclaimer.models import VolumeSnapshot
from reclaimer.reconciler import ReconciliationLoop
from reclaimer.store import VolumeStore


# ============================================================================
# In-memory Volume Store
# ============================================================================

class FakeVolumeStore(VolumeStore):
    """
    In-memory VolumeStore.

    Behaves like the API server for the calls the reclaimer makes: merge
    patches, resourceVersion bumps on every write, and 409 conflicts when a
    write carries a stale resourceVersion.
    """

    def __init__(self, volumes: list[VolumeSnapshot] | None = None):
        self.volumes = {v.name: v for v in (volumes or [])}
        self.writes = []
        self.fail_writes_for = set()
        self.list_error = None

    def add(self, volume: VolumeSnapshot) -> None:
        self.volumes[volume.name] = volume

    def get(self, name: str) -> VolumeSnapshot:
        return self.volumes[name]

    def list_volumes(self, storage_class_name=None):
        if self.list_error is not None:
            raise self.list_error
        return [
            v for v in self.volumes.values()
            if storage_class_name is None or v.storage_class_name == storage_class_name
        ]

    def _check_write(self, name, resource_version):
        if name in self.fail_writes_for:
            raise StoreWriteError(name, "injected failure", status=500)
        if name not in self.volumes:
            raise StoreWriteError(name, "not found", status=404)
        current = self.volumes[name].resource_version
        if resource_version is not None and resource_version != current:
            raise StoreWriteError(name, "conflict", status=409)

    def _bump(self, volume: VolumeSnapshot, **changes) -> None:
        next_version = str(int(volume.resource_version or "0") + 1)
        self.volumes[volume.name] = replace(volume, resource_version=next_version, **changes)

    def patch_annotations(self, name, annotations, resource_version=None):
        self._check_write(name, resource_version)
        self.writes.append(("annotations", name, dict(annotations)))
        volume = self.volumes[name]
        self._bump(volume, annotations={**volume.annotations, **annotations})

    def patch_reclaim_policy(self, name, policy, resource_version=None):
        self._check_write(name, resource_version)
        self.writes.append(("reclaim_policy", name, policy))
        self._bump(self.volumes[name], reclaim_policy=policy)


@pytest.fixture
def fake_store():
    """Empty in-memory volume store."""
    return FakeVolumeStore()


@pytest.fixture
def ledger(fake_store, reclaimer_config):
    return AnnotationLedger(fake_store, reclaimer_config.deletion_marker_annotation)


@pytest.fixture
def engine(reclaimer_config, ledger):
    return ReclaimDecisionEngine(reclaimer_config, ledger)


@pytest.fixture
def loop(engine, ledger):
    return ReconciliationLoop(engine, ledger)


# ============================================================================
# Mock Kubernetes Client Fixtures
# ============================================================================

def make_pv(
    name="pvc-0001",
    phase="Released",
    storage_class_name="cephfs",
    annotations=None,
    reclaim_policy="Retain",
    creation_timestamp=None,
    resource_version="1000",
):
    """Build an object shaped like V1PersistentVolume."""
    return SimpleNamespace(
        metadata=SimpleNamespace(
            name=name,
            annotations=annotations,
            creation_timestamp=creation_timestamp,
            resource_version=resource_version,
        ),
        spec=SimpleNamespace(
            storage_class_name=storage_class_name,
            persistent_volume_reclaim_policy=reclaim_policy,
        ),
        status=SimpleNamespace(phase=phase),
    )


def make_pv_page(items, continue_token=None):
    """Build an object shaped like V1PersistentVolumeList."""
    return SimpleNamespace(
        items=items,
        metadata=SimpleNamespace(_continue=continue_token),
    )


@pytest.fixture
def mock_k8s_core_api():
    """Mock Kubernetes CoreV1Api."""
    api = MagicMock()
    api.list_persistent_volume.return_value = make_pv_page([])
    api.patch_persistent_volume.return_value = None
    return api


@pytest.fixture
def pv_factory():
    """Factory for V1PersistentVolume-shaped objects."""
    return make_pv


@pytest.fixture
def pv_page_factory():
    """Factory for V1PersistentVolumeList-shaped objects."""
    return make_pv_page
