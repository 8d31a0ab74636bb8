"""Command line checks for the manifests and a live Minikube deployment.

    python -m app.verify manifests --dir k8s
    python -m app.verify rollout
    python -m app.verify smoke --url http://$(minikube ip):30080/message
"""
import argparse
import logging
import os
import sys

from app import cluster, manifests
from app.app import DEFAULT_MESSAGE
from app.errors import MessageServiceError

logger = logging.getLogger(__name__)


def run_manifests(args):
    problems = manifests.validate_contract(
        manifests.load_manifests(args.dir),
        replicas=args.replicas,
        node_port=args.node_port,
        container_port=args.container_port,
    )
    for problem in problems:
        print(f"FAIL: {problem}")
    if problems:
        return 1
    print(f"OK: manifests in {args.dir} satisfy the deployment contract")
    return 0


def run_rollout(args):
    _, apps_api = cluster.load_cluster_clients()
    rollout = cluster.wait_for_rollout(
        apps_api, args.deployment, args.namespace, timeout=args.timeout, interval=args.interval
    )
    print(f"OK: {rollout.name} has {rollout.ready}/{rollout.desired} ready replicas")
    return 0


def run_smoke(args):
    url = args.url
    if not url:
        core_api, _ = cluster.load_cluster_clients()
        url = cluster.node_port_url(core_api, args.service, args.namespace)
    body = cluster.fetch_message(url, timeout=args.timeout)
    if body != args.expected:
        print(f"FAIL: {url} returned {body!r}, expected {args.expected!r}")
        return 1
    print(f"OK: {url} returned the expected message")
    return 0


def build_parser():
    parser = argparse.ArgumentParser(prog='app.verify', description="Verify the message-service deployment")
    parser.add_argument('-v', '--verbose', action='store_true', help="Enable debug logging")
    sub = parser.add_subparsers(dest='command', required=True)

    p = sub.add_parser('manifests', help="Check the Deployment/Service manifests offline")
    p.add_argument('--dir', default='k8s')
    p.add_argument('--replicas', type=int, default=manifests.REPLICAS)
    p.add_argument('--node-port', type=int, default=manifests.NODE_PORT)
    p.add_argument('--container-port', type=int, default=manifests.CONTAINER_PORT)
    p.set_defaults(func=run_manifests)

    namespace = os.environ.get('K8S_NAMESPACE', 'default')

    p = sub.add_parser('rollout', help="Wait until every replica is ready")
    p.add_argument('--deployment', default='message-service')
    p.add_argument('--namespace', default=namespace)
    p.add_argument('--timeout', type=float, default=120)
    p.add_argument('--interval', type=float, default=2)
    p.set_defaults(func=run_rollout)

    p = sub.add_parser('smoke', help="Call /message through the NodePort")
    p.add_argument('--url', help="Full URL; discovered from the cluster when omitted")
    p.add_argument('--service', default='message-service')
    p.add_argument('--namespace', default=namespace)
    p.add_argument('--expected', default=os.environ.get('MESSAGE_TEXT', DEFAULT_MESSAGE))
    p.add_argument('--timeout', type=float, default=5)
    p.set_defaults(func=run_smoke)
    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    )
    try:
        return args.func(args)
    except MessageServiceError as e:
        logger.error("%s", e)
        print(f"FAIL: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
