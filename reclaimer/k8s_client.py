"""
Kubernetes client setup.

In the CronJob the pod's service account is used automatically. Outside
the cluster (local runs, debugging) a kubeconfig file is loaded instead.
"""

import logging

from kubernetes import client, config
from kubernetes.config.config_exception import ConfigException

logger = logging.getLogger(__name__)


def setup_kubernetes_client(kubeconfig: str | None = None) -> client.CoreV1Api:
    """
    Create a CoreV1Api client.

    Args:
        kubeconfig: Path to a kubeconfig file. When omitted the in-cluster
            service account is tried first, then the default kubeconfig.

    Returns:
        Configured CoreV1Api instance

    Raises:
        ConfigException: if no usable configuration is found
    """
    if kubeconfig:
        logger.info(f"Loading Kubernetes configuration from {kubeconfig}")
        config.load_kube_config(config_file=kubeconfig)
        return client.CoreV1Api()

    try:
        config.load_incluster_config()
        logger.info("Using in-cluster Kubernetes configuration")
    except ConfigException:
        logger.info("Not running in a cluster, falling back to default kubeconfig")
        config.load_kube_config()

    return client.CoreV1Api()
