"""
Command Line Interface
Price and utilization estimates for Node/Pod manifests

Usage:
  autoscaler-estimators node-price node.yaml --start 2024-01-01T00:00:00Z --end 2024-01-01T01:30:00Z
  autoscaler-estimators pod-price pod.yaml --start ... --end ... --catalog prices.yaml
  autoscaler-estimators utilization node-and-pods.yaml --skip-daemonset-pods
"""

import argparse
import json
import logging
import sys
from dataclasses import asdict
from datetime import datetime, timezone

from autoscaler_estimators.config import ConfigLoader
from autoscaler_estimators.logging_config import setup_structured_logging
from autoscaler_estimators.manifests import load_manifests, parse_timestamp, pods_on_node
from autoscaler_estimators.price_catalog import load_price_catalog
from autoscaler_estimators.price_model import GcePriceModel
from autoscaler_estimators.utilization import NodeInfo, UtilizationError, calculate

logger = logging.getLogger(__name__)


def _timestamp(value: str) -> datetime:
    try:
        return parse_timestamp(value)
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"invalid timestamp: {value}") from e


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='autoscaler-estimators',
        description='Estimate node/pod prices and node utilization for cluster autoscaling'
    )
    subparsers = parser.add_subparsers(dest='command', required=True)

    for command, help_text in (('node-price', 'Price every Node in the manifest'),
                               ('pod-price', 'Theoretical minimum price of every Pod in the manifest')):
        sub = subparsers.add_parser(command, help=help_text)
        sub.add_argument('manifest', help='YAML file with Node/Pod objects')
        sub.add_argument('--start', type=_timestamp, required=True, help='Window start (RFC 3339)')
        sub.add_argument('--end', type=_timestamp, required=True, help='Window end (RFC 3339)')
        sub.add_argument('--catalog', help='YAML price catalog (default: PRICE_CATALOG_FILE or built-in)')

    util = subparsers.add_parser('utilization', help='Utilization of the Node in the manifest')
    util.add_argument('manifest', help='YAML file with one Node followed by its Pods')
    util.add_argument('--skip-daemonset-pods', action='store_true', default=None,
                      help='Subtract DaemonSet pod requests from allocatable')
    util.add_argument('--skip-mirror-pods', action='store_true', default=None,
                      help='Subtract mirror pod requests from allocatable')
    util.add_argument('--gpu-label', help='Node label carrying the GPU type')
    util.add_argument('--now', type=_timestamp, help='Evaluation time (default: current time)')

    return parser


def _price_model(args, loader: ConfigLoader) -> GcePriceModel:
    catalog = load_price_catalog(args.catalog) if args.catalog else loader.load_price_catalog()
    return GcePriceModel(catalog, gpu_label=loader.get_config().gpu_label)


def run_node_price(args, loader: ConfigLoader) -> dict:
    model = _price_model(args, loader)
    nodes, _ = load_manifests(args.manifest)
    return {
        'nodes': [
            {'name': node.metadata.name, 'price': model.node_price(node, args.start, args.end)}
            for node in nodes
        ]
    }


def run_pod_price(args, loader: ConfigLoader) -> dict:
    model = _price_model(args, loader)
    _, pods = load_manifests(args.manifest)
    return {
        'pods': [
            {'name': pod.metadata.name, 'price': model.pod_price(pod, args.start, args.end)}
            for pod in pods
        ]
    }


def run_utilization(args, loader: ConfigLoader) -> dict:
    config = loader.get_config()
    nodes, pods = load_manifests(args.manifest)
    if len(nodes) != 1:
        raise ValueError(f"Expected exactly one Node in {args.manifest}, found {len(nodes)}")

    node = nodes[0]
    skip_daemonset_pods = config.skip_daemonset_pods if args.skip_daemonset_pods is None else args.skip_daemonset_pods
    skip_mirror_pods = config.skip_mirror_pods if args.skip_mirror_pods is None else args.skip_mirror_pods
    info = calculate(
        NodeInfo(node=node, pods=pods_on_node(pods, node)),
        skip_daemonset_pods,
        skip_mirror_pods,
        args.gpu_label or config.gpu_label,
        args.now or datetime.now(timezone.utc),
    )
    return {'node': node.metadata.name, **asdict(info)}


COMMANDS = {
    'node-price': run_node_price,
    'pod-price': run_pod_price,
    'utilization': run_utilization,
}


def main(argv=None, environ=None) -> int:
    args = build_parser().parse_args(argv)
    loader = ConfigLoader(environ)

    try:
        config = loader.load_config()
        setup_structured_logging(config.log_level, json_format=config.log_format != 'text')
        result = COMMANDS[args.command](args, loader)
    except (OSError, ValueError, UtilizationError) as e:
        logger.error(f"{args.command} failed: {e}")
        print(f"error: {e}", file=sys.stderr)
        return 1

    print(json.dumps(result, indent=2))
    return 0
