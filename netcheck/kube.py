"""Kubernetes API client construction."""

from typing import Optional

from kubernetes import client, config
from kubernetes.config.config_exception import ConfigException

from netcheck.core.logging_config import get_logger

logger = get_logger(__name__)


class KubeClientError(Exception):
    """Raised when no usable Kubernetes configuration can be loaded."""


def create_kube_client(kubeconfig_file: Optional[str] = None) -> client.CoreV1Api:
    """Return a CoreV1Api client.

    - With `kubeconfig_file`: loads that kubeconfig.
    - Inside a Kubernetes pod: uses in-cluster config.
    - Otherwise: falls back to the default kubeconfig.

    Raises:
        KubeClientError: If no configuration source works.
    """
    try:
        if kubeconfig_file:
            config.load_kube_config(config_file=kubeconfig_file)
            logger.info("Using kubeconfig", path=kubeconfig_file)
        else:
            try:
                config.load_incluster_config()
                logger.info("Using in-cluster Kubernetes config")
            except ConfigException as e:
                logger.debug("In-cluster config unavailable", error=str(e))
                config.load_kube_config()
                logger.info("Using default kubeconfig")
    except (ConfigException, OSError) as e:
        raise KubeClientError(f"Unable to create kubernetes client: {e}") from e

    return client.CoreV1Api()
