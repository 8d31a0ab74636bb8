"""Reads the Kubernetes manifests and checks the deployment contract.

The contract is the one the service relies on when running on Minikube:
a Deployment with a fixed replica count whose selector matches its pod
labels, and a NodePort Service forwarding a node port to the container
port the Flask app listens on.
"""
import logging
import os

import yaml

from app.errors import ManifestError

logger = logging.getLogger(__name__)

REPLICAS = 2
NODE_PORT = 30080
CONTAINER_PORT = 8080
PULL_POLICY = 'IfNotPresent'


def load_manifests(directory):
    """Returns every document under `directory`, grouped by kind."""
    if not os.path.isdir(directory):
        raise ManifestError(f"Manifest directory not found: {directory}")

    by_kind = {}
    for name in sorted(os.listdir(directory)):
        if not name.endswith(('.yaml', '.yml')):
            continue
        path = os.path.join(directory, name)
        try:
            with open(path, encoding='utf-8') as f:
                documents = [d for d in yaml.safe_load_all(f) if d]
        except (OSError, UnicodeDecodeError, yaml.YAMLError) as e:
            raise ManifestError(f"Could not read {path}: {e}") from e
        for doc in documents:
            if not isinstance(doc, dict) or 'kind' not in doc:
                raise ManifestError(f"{path} contains a document without a kind")
            by_kind.setdefault(doc['kind'], []).append(doc)
        logger.debug("Loaded %d document(s) from %s", len(documents), path)
    return by_kind


def _single(manifests, kind, problems):
    docs = manifests.get(kind, [])
    if len(docs) != 1:
        problems.append(f"expected exactly one {kind}, found {len(docs)}")
        return None
    return docs[0]


def _check_deployment(deployment, replicas, container_port, problems):
    spec = deployment.get('spec') or {}
    if spec.get('replicas') != replicas:
        problems.append(f"Deployment replicas is {spec.get('replicas')}, expected {replicas}")

    selector = (spec.get('selector') or {}).get('matchLabels') or {}
    template = spec.get('template') or {}
    labels = (template.get('metadata') or {}).get('labels') or {}
    if not selector:
        problems.append("Deployment has no matchLabels selector")
    elif any(labels.get(k) != v for k, v in selector.items()):
        problems.append(f"Deployment selector {selector} does not match pod labels {labels}")

    containers = (template.get('spec') or {}).get('containers') or []
    if not containers:
        problems.append("Deployment pod template has no containers")
    exposed = set()
    for container in containers:
        if container.get('imagePullPolicy') != PULL_POLICY:
            problems.append(
                f"container {container.get('name')} uses imagePullPolicy "
                f"{container.get('imagePullPolicy')}, expected {PULL_POLICY}"
            )
        for port in container.get('ports') or []:
            exposed.add(port.get('containerPort'))
    if containers and container_port not in exposed:
        problems.append(f"no container exposes port {container_port}")
    return labels


def _check_service(service, pod_labels, node_port, container_port, problems):
    spec = service.get('spec') or {}
    if spec.get('type') != 'NodePort':
        problems.append(f"Service type is {spec.get('type')}, expected NodePort")

    ports = spec.get('ports') or []
    # targetPort defaults to port when omitted
    if not any(p.get('nodePort') == node_port and p.get('targetPort', p.get('port')) == container_port
               for p in ports):
        problems.append(f"Service does not map nodePort {node_port} to targetPort {container_port}")

    selector = spec.get('selector') or {}
    if not selector:
        problems.append("Service has no selector")
    elif pod_labels is not None and any(pod_labels.get(k) != v for k, v in selector.items()):
        problems.append(f"Service selector {selector} does not match pod labels {pod_labels}")


def validate_contract(manifests, replicas=REPLICAS, node_port=NODE_PORT, container_port=CONTAINER_PORT):
    """Returns a list of contract violations; empty when the manifests are consistent."""
    problems = []
    deployment = _single(manifests, 'Deployment', problems)
    service = _single(manifests, 'Service', problems)

    pod_labels = None
    if deployment is not None:
        pod_labels = _check_deployment(deployment, replicas, container_port, problems)
    if service is not None:
        _check_service(service, pod_labels, node_port, container_port, problems)

    for problem in problems:
        logger.warning("Manifest contract violation: %s", problem)
    return problems
