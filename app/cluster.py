"""Checks a running deployment through the Kubernetes API and its NodePort."""
import logging
import time
from dataclasses import dataclass

import requests
from kubernetes import client, config
from kubernetes.client.rest import ApiException

from app.errors import ClusterError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RolloutStatus:
    name: str
    desired: int
    ready: int
    available: int
    updated: int = 0
    current: int = 0
    generation: int = 0
    observed_generation: int = 0

    @property
    def converged(self):
        # same conditions kubectl rollout status waits for
        return (
            self.desired > 0
            and self.observed_generation >= self.generation
            and self.updated == self.desired
            and self.current == self.desired
            and self.ready == self.desired
        )


def load_cluster_clients():
    """Returns (CoreV1Api, AppsV1Api), preferring in-cluster config over kubeconfig."""
    try:
        config.load_incluster_config()
        logger.info("Successfully loaded in-cluster K8s config.")
    except config.ConfigException:
        try:
            config.load_kube_config()
            logger.info("Loaded K8s config from kubeconfig.")
        except config.ConfigException as e:
            raise ClusterError(f"Could not load K8s config: {e}") from e
    return client.CoreV1Api(), client.AppsV1Api()


def deployment_status(apps_api, name, namespace='default'):
    try:
        deployment = apps_api.read_namespaced_deployment_status(name=name, namespace=namespace)
    except ApiException as e:
        raise ClusterError(f"Could not read deployment {namespace}/{name}: {e.reason}") from e

    status = deployment.status
    return RolloutStatus(
        name=name,
        desired=deployment.spec.replicas or 0,
        ready=status.ready_replicas or 0,
        available=status.available_replicas or 0,
        updated=status.updated_replicas or 0,
        current=status.replicas or 0,
        generation=deployment.metadata.generation or 0,
        observed_generation=status.observed_generation or 0,
    )


def wait_for_rollout(apps_api, name, namespace='default', timeout=120, interval=2):
    """Polls the deployment until every desired replica runs the latest template and is ready."""
    deadline = time.monotonic() + timeout
    while True:
        rollout = deployment_status(apps_api, name, namespace)
        logger.info("Deployment %s: %d/%d updated, %d/%d ready",
                    name, rollout.updated, rollout.desired, rollout.ready, rollout.desired)
        if rollout.converged:
            return rollout
        if time.monotonic() >= deadline:
            raise ClusterError(
                f"Deployment {namespace}/{name} not ready after {timeout}s "
                f"({rollout.updated}/{rollout.desired} updated, {rollout.ready}/{rollout.desired} ready)"
            )
        time.sleep(interval)


def _node_address(core_api):
    nodes = core_api.list_node().items
    for node in nodes:
        for address in node.status.addresses or []:
            if address.type == 'InternalIP':
                return address.address
    raise ClusterError("No node with an InternalIP address found")


def node_port_url(core_api, service, namespace='default', path='/message'):
    """Builds the URL that reaches `service` through its NodePort on the first node."""
    try:
        svc = core_api.read_namespaced_service(name=service, namespace=namespace)
    except ApiException as e:
        raise ClusterError(f"Could not read service {namespace}/{service}: {e.reason}") from e

    if svc.spec.type != 'NodePort':
        raise ClusterError(f"Service {namespace}/{service} is {svc.spec.type}, not NodePort")
    node_ports = [p.node_port for p in svc.spec.ports or [] if p.node_port]
    if not node_ports:
        raise ClusterError(f"Service {namespace}/{service} has no node port assigned")

    try:
        host = _node_address(core_api)
    except ApiException as e:
        raise ClusterError(f"Could not list nodes: {e.reason}") from e
    return f"http://{host}:{node_ports[0]}{path}"


def fetch_message(url, timeout=5):
    """GETs `url` and returns the response body."""
    try:
        response = requests.get(url, timeout=timeout)
    except requests.RequestException as e:
        raise ClusterError(f"Request to {url} failed: {e}") from e
    if response.status_code != 200:
        raise ClusterError(f"{url} returned HTTP {response.status_code}")
    return response.text
