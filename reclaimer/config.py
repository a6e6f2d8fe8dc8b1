"""
Runtime configuration for the volume reclaimer.

Values come from environment variables (set on the CronJob) and can be
overridden by command-line flags.
"""

import logging
import os
from dataclasses import dataclass, replace
from datetime import datetime

from .clock import parse_timestamp
from .errors import PolicyParseError

# Environment defaults
DEFAULT_STORAGE_CLASS_NAME = "cephfs"
DEFAULT_GRACE_PERIOD_ANNOTATION = "reclaim-volumes.cern.ch/deletion-grace-period-after-release"
DEFAULT_IMMEDIATE_RECLAIM_ANNOTATION = (
    "reclaim-volumes.cern.ch/no-grace-period-if-time-since-creation-is-less-than"
)
DEFAULT_DELETION_MARKER_ANNOTATION = "volume-ready-to-delete.cern.ch/delete-volume"

VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass(frozen=True)
class ReclaimerConfig:
    """Settings for one reclaimer invocation"""
    storage_class_name: str = DEFAULT_STORAGE_CLASS_NAME
    grace_period_annotation: str = DEFAULT_GRACE_PERIOD_ANNOTATION
    immediate_reclaim_annotation: str = DEFAULT_IMMEDIATE_RECLAIM_ANNOTATION
    deletion_marker_annotation: str = DEFAULT_DELETION_MARKER_ANNOTATION
    dry_run: bool = False
    fixed_now: datetime | None = None
    kubeconfig: str | None = None
    log_level: str = "INFO"

    def validate(self) -> None:
        """
        Check the settings before any cluster access.

        Raises:
            ValueError: if a setting is empty or out of range
        """
        if not self.storage_class_name or not self.storage_class_name.strip():
            raise ValueError("Storage class name must not be empty")

        keys = {
            "grace period annotation": self.grace_period_annotation,
            "immediate-reclaim annotation": self.immediate_reclaim_annotation,
            "deletion marker annotation": self.deletion_marker_annotation,
        }
        for label, key in keys.items():
            if not key or not key.strip():
                raise ValueError(f"The {label} key must not be empty")

        if len(set(keys.values())) != len(keys):
            raise ValueError(f"Annotation keys must be distinct, got: {list(keys.values())}")

        if self.log_level.upper() not in VALID_LOG_LEVELS:
            raise ValueError(
                f"Invalid log level '{self.log_level}'. "
                f"Must be one of: {', '.join(VALID_LOG_LEVELS)}"
            )

    @property
    def log_level_value(self) -> int:
        return getattr(logging, self.log_level.upper())


def _env_flag(value: str | None) -> bool:
    return (value or "").strip().lower() in ("1", "true", "yes", "on")


def _parse_now(raw: str | None) -> datetime | None:
    if raw is None or not raw.strip():
        return None
    try:
        return parse_timestamp(raw)
    except PolicyParseError as e:
        raise ValueError(f"Invalid clock override '{raw}': {e}") from e


def load_config(environ: dict[str, str] | None = None) -> ReclaimerConfig:
    """
    Build configuration from environment variables.

    Args:
        environ: Mapping to read from (default: os.environ)

    Returns:
        ReclaimerConfig populated from the environment

    Raises:
        ValueError: if RECLAIMER_NOW is set but not an RFC3339 timestamp
    """
    env = os.environ if environ is None else environ

    return ReclaimerConfig(
        storage_class_name=env.get("STORAGE_CLASS_NAME", DEFAULT_STORAGE_CLASS_NAME),
        grace_period_annotation=env.get(
            "GRACE_PERIOD_ANNOTATION", DEFAULT_GRACE_PERIOD_ANNOTATION
        ),
        immediate_reclaim_annotation=env.get(
            "IMMEDIATE_RECLAIM_ANNOTATION", DEFAULT_IMMEDIATE_RECLAIM_ANNOTATION
        ),
        deletion_marker_annotation=env.get(
            "DELETION_MARKER_ANNOTATION", DEFAULT_DELETION_MARKER_ANNOTATION
        ),
        dry_run=_env_flag(env.get("DRY_RUN")),
        fixed_now=_parse_now(env.get("RECLAIMER_NOW")),
        kubeconfig=env.get("KUBECONFIG") or None,
        log_level=env.get("LOG_LEVEL", "INFO"),
    )


def apply_overrides(config: ReclaimerConfig, args) -> ReclaimerConfig:
    """
    Apply parsed command-line flags on top of environment configuration.

    Flags left unset on the command line keep the environment value.
    """
    overrides = {}
    if args.storage_class_name is not None:
        overrides["storage_class_name"] = args.storage_class_name
    if args.dry_run:
        overrides["dry_run"] = True
    if args.now is not None:
        overrides["fixed_now"] = _parse_now(args.now)
    if args.kubeconfig is not None:
        overrides["kubeconfig"] = args.kubeconfig
    if args.log_level is not None:
        overrides["log_level"] = args.log_level

    return replace(config, **overrides)
