"""
Released PersistentVolume reclaimer - Kubernetes CronJob

Each run is one complete pass: list PersistentVolumes, decide per volume
whether to schedule, reclaim or leave it, and patch the volume accordingly.
All state lives in annotations on the volumes themselves.
"""

import argparse
import logging
import signal
import sys
import threading
from datetime import UTC, datetime

from .clock import ReclaimClock
from .config import apply_overrides, load_config
from .engine import ReclaimDecisionEngine
from .errors import StoreReadError
from .k8s_client import setup_kubernetes_client
from .ledger import AnnotationLedger
from .reconciler import ReconciliationLoop, reconcile
from .store import KubernetesVolumeStore

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_CONFIG_ERROR = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pv-reclaimer",
        description="Reclaim released PersistentVolumes according to their grace-period annotations",
    )
    parser.add_argument(
        "--storage-class-name",
        default=None,
        help="Only manage volumes of this storage class (default: $STORAGE_CLASS_NAME or cephfs)",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Log decisions without patching any volume",
    )
    parser.add_argument(
        "--now",
        default=None,
        help="Evaluate as if the current time were this RFC3339 timestamp",
    )
    parser.add_argument(
        "--kubeconfig",
        default=None,
        help="Path to a kubeconfig file (default: in-cluster service account)",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Logging level (default: $LOG_LEVEL or INFO)",
    )
    return parser


def setup_logging(level: int) -> None:
    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        stream=sys.stdout
    )


def install_stop_handlers(stop_event: threading.Event) -> None:
    """Turn SIGTERM/SIGINT into a request to stop after the current volume"""
    def _handler(signum, frame):
        logger.warning(f"Received signal {signum}, finishing current volume and stopping")
        stop_event.set()

    signal.signal(signal.SIGTERM, _handler)
    signal.signal(signal.SIGINT, _handler)


def main(argv: list[str] | None = None) -> int:
    """Main entry point for CronJob execution"""
    args = build_parser().parse_args(argv)

    try:
        config = apply_overrides(load_config(), args)
        config.validate()
    except ValueError as e:
        setup_logging(logging.INFO)
        logger.error(f"Invalid configuration: {e}")
        return EXIT_CONFIG_ERROR

    setup_logging(config.log_level_value)

    start_time = datetime.now(UTC)
    logger.info(f"Volume reclaimer starting at {start_time.isoformat()}")
    logger.info(
        f"Storage class: {config.storage_class_name}, dry run: {config.dry_run}, "
        f"clock override: {config.fixed_now.isoformat() if config.fixed_now else 'none'}"
    )

    try:
        core_api = setup_kubernetes_client(config.kubeconfig)
    except Exception as e:
        logger.error(f"Failed to set up Kubernetes client: {e}", exc_info=True)
        return EXIT_FAILURE

    store = KubernetesVolumeStore(core_api)
    ledger = AnnotationLedger(store, config.deletion_marker_annotation)
    engine = ReclaimDecisionEngine(config, ledger)
    loop = ReconciliationLoop(engine, ledger, dry_run=config.dry_run)
    clock = ReclaimClock(config.fixed_now)

    stop_event = threading.Event()
    install_stop_handlers(stop_event)

    try:
        summary = reconcile(
            store,
            loop,
            clock,
            storage_class_name=config.storage_class_name,
            should_stop=stop_event.is_set,
        )
    except StoreReadError as e:
        logger.error(f"Impossible to retrieve the list of persistent volumes: {e}", exc_info=True)
        return EXIT_FAILURE

    duration = (datetime.now(UTC) - start_time).total_seconds()
    logger.info(f"Reclaim run finished in {duration:.2f} seconds: {summary.as_dict()}")
    return EXIT_OK


def cli() -> None:
    sys.exit(main())


if __name__ == "__main__":
    cli()
