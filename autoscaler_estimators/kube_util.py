"""
Kubernetes Object Helpers
Label lookups, pod classification predicates and quantity arithmetic shared
by the price model and the utilization calculator
"""

import math
from datetime import datetime, timedelta
from typing import Dict, Optional

from kubernetes.utils import parse_quantity

# Instance type labels (stable key wins over the legacy one)
LABEL_INSTANCE_TYPE_STABLE = 'node.kubernetes.io/instance-type'
LABEL_INSTANCE_TYPE_LEGACY = 'beta.kubernetes.io/instance-type'

# Preemptible / spot markers (GKE)
PREEMPTIBLE_LABEL = 'cloud.google.com/gke-preemptible'
SPOT_LABEL = 'cloud.google.com/gke-spot'

# Default label carrying the accelerator type
GPU_LABEL = 'cloud.google.com/gke-accelerator'

RESOURCE_CPU = 'cpu'
RESOURCE_MEMORY = 'memory'
RESOURCE_NVIDIA_GPU = 'nvidia.com/gpu'

DAEMONSET_POD_ANNOTATION = 'cluster-autoscaler.kubernetes.io/daemonset-pod'
MIRROR_POD_ANNOTATION = 'kubernetes.io/config.mirror'

DEFAULT_TERMINATION_GRACE_PERIOD_SECONDS = 30
POD_LONG_TERMINATING_EXTRA_THRESHOLD = timedelta(seconds=30)


def milli_value(quantity) -> int:
    """Quantity in thousandths, rounded up (e.g. '500m' -> 500, '2' -> 2000)"""
    return int(math.ceil(parse_quantity(quantity) * 1000))


def value(quantity) -> int:
    """Quantity in whole units, rounded up (e.g. '1Gi' -> 1073741824)"""
    return int(math.ceil(parse_quantity(quantity)))


def node_labels(node) -> Dict[str, str]:
    metadata = getattr(node, 'metadata', None)
    if metadata is None:
        return {}
    return metadata.labels or {}


def node_capacity(node) -> Dict[str, str]:
    status = getattr(node, 'status', None)
    if status is None:
        return {}
    return status.capacity or {}


def node_allocatable(node) -> Dict[str, str]:
    status = getattr(node, 'status', None)
    if status is None:
        return {}
    return status.allocatable or {}


def object_name(obj) -> str:
    metadata = getattr(obj, 'metadata', None)
    if metadata is None or not metadata.name:
        return '<unknown>'
    return metadata.name


def container_requests(container) -> Dict[str, str]:
    if container.resources is None:
        return {}
    return container.resources.requests or {}


def pod_containers(pod) -> list:
    if pod.spec is None:
        return []
    return pod.spec.containers or []


def get_instance_type_from_labels(labels: Optional[Dict[str, str]]) -> Optional[str]:
    """Resolve the machine type, preferring the stable label key"""
    if not labels:
        return None
    if LABEL_INSTANCE_TYPE_STABLE in labels:
        return labels[LABEL_INSTANCE_TYPE_STABLE]
    if LABEL_INSTANCE_TYPE_LEGACY in labels:
        return labels[LABEL_INSTANCE_TYPE_LEGACY]
    return None


def has_preemptible_pricing(node) -> bool:
    """
    Whether the node should be priced as preemptible.

    Spot VMs have dynamic pricing; the static preemptible price is used for them
    as well since prices are only ever compared with each other.
    """
    labels = node_labels(node)
    return labels.get(PREEMPTIBLE_LABEL) == 'true' or labels.get(SPOT_LABEL) == 'true'


def node_has_gpu(gpu_label: str, node) -> bool:
    """Node carries the accelerator label or advertises GPU capacity"""
    if gpu_label and gpu_label in node_labels(node):
        return True
    gpu_capacity = node_capacity(node).get(RESOURCE_NVIDIA_GPU)
    return gpu_capacity is not None and milli_value(gpu_capacity) > 0


def is_daemonset_pod(pod) -> bool:
    metadata = pod.metadata
    if metadata is None:
        return False
    for owner in metadata.owner_references or []:
        if owner.controller and owner.kind == 'DaemonSet':
            return True
    annotations = metadata.annotations or {}
    return annotations.get(DAEMONSET_POD_ANNOTATION) == 'true'


def is_mirror_pod(pod) -> bool:
    if pod.metadata is None:
        return False
    return MIRROR_POD_ANNOTATION in (pod.metadata.annotations or {})


def is_pod_long_terminating(pod, now: datetime) -> bool:
    """Pod was deleted and has outlived its grace period plus a 30s margin"""
    if pod.metadata is None or pod.metadata.deletion_timestamp is None:
        return False

    grace_period = None
    if pod.spec is not None:
        grace_period = pod.spec.termination_grace_period_seconds
    if grace_period is None:
        grace_period = DEFAULT_TERMINATION_GRACE_PERIOD_SECONDS

    deadline = (
        pod.metadata.deletion_timestamp
        + timedelta(seconds=grace_period)
        + POD_LONG_TERMINATING_EXTRA_THRESHOLD
    )
    return deadline < now
