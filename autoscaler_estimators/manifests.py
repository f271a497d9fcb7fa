"""
Manifest Conversion
Turns parsed YAML/JSON manifests into Kubernetes client models
"""

from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Tuple

import yaml
from kubernetes import client


def parse_timestamp(value) -> Optional[datetime]:
    """RFC 3339 string (or datetime) to an aware datetime; naive values are taken as UTC"""
    if value is None:
        return None
    if not isinstance(value, datetime):
        value = datetime.fromisoformat(str(value).replace('Z', '+00:00'))
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value


def _quantities(resources: Optional[Dict[str, Any]]) -> Optional[Dict[str, str]]:
    if resources is None:
        return None
    return {name: str(quantity) for name, quantity in resources.items()}


def _metadata(data: Dict[str, Any]) -> client.V1ObjectMeta:
    owners = [
        client.V1OwnerReference(
            api_version=owner.get('apiVersion', 'v1'),
            kind=owner.get('kind', ''),
            name=owner.get('name', ''),
            uid=owner.get('uid', ''),
            controller=owner.get('controller'),
        )
        for owner in data.get('ownerReferences') or []
    ]
    return client.V1ObjectMeta(
        name=data.get('name'),
        namespace=data.get('namespace'),
        labels=data.get('labels'),
        annotations=data.get('annotations'),
        owner_references=owners or None,
        deletion_timestamp=parse_timestamp(data.get('deletionTimestamp')),
    )


def node_from_manifest(data: Dict[str, Any]) -> client.V1Node:
    status = data.get('status') or {}
    return client.V1Node(
        metadata=_metadata(data.get('metadata') or {}),
        status=client.V1NodeStatus(
            capacity=_quantities(status.get('capacity')),
            allocatable=_quantities(status.get('allocatable')),
        ),
    )


def pod_from_manifest(data: Dict[str, Any]) -> client.V1Pod:
    spec = data.get('spec') or {}
    containers = []
    for i, container in enumerate(spec.get('containers') or []):
        resources = container.get('resources') or {}
        containers.append(client.V1Container(
            name=container.get('name') or f'container-{i}',
            resources=client.V1ResourceRequirements(requests=_quantities(resources.get('requests'))),
        ))
    return client.V1Pod(
        metadata=_metadata(data.get('metadata') or {}),
        spec=client.V1PodSpec(
            containers=containers,
            node_name=spec.get('nodeName'),
            termination_grace_period_seconds=spec.get('terminationGracePeriodSeconds'),
        ),
    )


def _documents(stream) -> List[Dict[str, Any]]:
    docs = []
    for doc in yaml.safe_load_all(stream):
        if not doc:
            continue
        if isinstance(doc, dict) and doc.get('kind') == 'List':
            docs.extend(doc.get('items') or [])
        else:
            docs.append(doc)

    for doc in docs:
        if not isinstance(doc, dict):
            raise ValueError(f"Manifest document is not an object: {doc!r}")
    return docs


def load_manifests(path: str) -> Tuple[List[client.V1Node], List[client.V1Pod]]:
    """
    Read a (multi-document) YAML file of Node and Pod objects.

    Raises:
        ValueError: a document is neither a Node nor a Pod
    """
    with open(path) as f:
        docs = _documents(f)

    nodes, pods = [], []
    for doc in docs:
        kind = doc.get('kind')
        if kind == 'Node':
            nodes.append(node_from_manifest(doc))
        elif kind == 'Pod':
            pods.append(pod_from_manifest(doc))
        else:
            raise ValueError(f"Unsupported manifest kind in {path}: {kind}")
    return nodes, pods


def pods_on_node(pods: Iterable[client.V1Pod], node: client.V1Node) -> List[client.V1Pod]:
    """Pods whose nodeName matches the node; pods without nodeName are assumed bound to it"""
    name = node.metadata.name if node.metadata else None
    return [pod for pod in pods if pod.spec.node_name in (None, name)]
