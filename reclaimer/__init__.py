"""
Reclaimer for released PersistentVolumes
"""

# Policy and clock
from .clock import ReclaimClock, ensure_utc, format_timestamp, parse_timestamp
from .policy import parse_duration, parse_grace_period, parse_immediate_reclaim_threshold

# Configuration
from .config import ReclaimerConfig, load_config

# Errors
from .errors import PolicyParseError, StoreReadError, StoreWriteError

# Domain types
from .models import (
    Decision,
    DecisionKind,
    PassSummary,
    ReclaimPolicy,
    VolumePhase,
    VolumeSnapshot
)

# Decision engine and loop
from .engine import ReclaimDecisionEngine
from .ledger import AnnotationLedger
from .reconciler import ReconciliationLoop, reconcile

# Volume store
from .store import KubernetesVolumeStore, VolumeStore

__all__ = [
    # Policy and clock
    "ReclaimClock",
    "ensure_utc",
    "format_timestamp",
    "parse_timestamp",
    "parse_duration",
    "parse_grace_period",
    "parse_immediate_reclaim_threshold",
    # Configuration
    "ReclaimerConfig",
    "load_config",
    # Errors
    "PolicyParseError",
    "StoreReadError",
    "StoreWriteError",
    # Domain types
    "Decision",
    "DecisionKind",
    "PassSummary",
    "ReclaimPolicy",
    "VolumePhase",
    "VolumeSnapshot",
    # Engine
    "ReclaimDecisionEngine",
    "AnnotationLedger",
    "ReconciliationLoop",
    "reconcile",
    # Store
    "KubernetesVolumeStore",
    "VolumeStore",
]
