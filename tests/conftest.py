"""
Shared pytest fixtures for the reclaimer test suite

Provides:
- A fixed "now" for deterministic decisions
- Configuration fixtures
- Volume snapshot factories
"""

import os
import sys
from datetime import UTC, datetime, timedelta

import pytest

# Make the package importable without installing it
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from reclaimer.config import (
    DEFAULT_DELETION_MARKER_ANNOTATION,
    DEFAULT_GRACE_PERIOD_ANNOTATION,
    DEFAULT_IMMEDIATE_RECLAIM_ANNOTATION,
    ReclaimerConfig,
)
from reclaimer.models import ReclaimPolicy, VolumePhase, VolumeSnapshot


# Test configuration
TEST_STORAGE_CLASS = "cephfs"
GRACE_KEY = DEFAULT_GRACE_PERIOD_ANNOTATION
THRESHOLD_KEY = DEFAULT_IMMEDIATE_RECLAIM_ANNOTATION
MARKER_KEY = DEFAULT_DELETION_MARKER_ANNOTATION


@pytest.fixture
def now():
    """Fixed evaluation instant (second precision, UTC)"""
    return datetime(2024, 5, 1, 10, 0, 0, tzinfo=UTC)


@pytest.fixture
def reclaimer_config():
    """Reclaimer configuration targeting the test storage class"""
    return ReclaimerConfig(
        storage_class_name=TEST_STORAGE_CLASS,
        grace_period_annotation=GRACE_KEY,
        immediate_reclaim_annotation=THRESHOLD_KEY,
        deletion_marker_annotation=MARKER_KEY,
    )


@pytest.fixture
def make_volume(now):
    """Factory for VolumeSnapshot objects with sensible defaults"""
    def _make_volume(
        name: str = "pvc-0001",
        phase: str = VolumePhase.RELEASED,
        created_ago: timedelta | None = timedelta(days=7),
        storage_class_name: str = TEST_STORAGE_CLASS,
        annotations: dict | None = None,
        reclaim_policy: str = ReclaimPolicy.RETAIN,
        resource_version: str | None = "1000",
    ) -> VolumeSnapshot:
        return VolumeSnapshot(
            name=name,
            phase=phase,
            creation_timestamp=(now - created_ago) if created_ago is not None else None,
            storage_class_name=storage_class_name,
            annotations=dict(annotations or {}),
            reclaim_policy=reclaim_policy,
            resource_version=resource_version,
        )

    return _make_volume
