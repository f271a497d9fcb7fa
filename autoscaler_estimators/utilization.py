"""
Node Utilization Calculator
Per-resource request utilization of a node, used to pick scale-down candidates

Utilization of a resource is the sum of pod requests divided by node
allocatable. DaemonSet and mirror pods can be factored out (their requests are
removed from allocatable instead of counted), and pods stuck terminating past
their grace period are ignored. Nodes with GPUs are judged by GPU only.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import List

from kubernetes.utils import parse_quantity

from autoscaler_estimators import kube_util

logger = logging.getLogger(__name__)


class UtilizationError(Exception):
    """Utilization of a resource could not be computed"""


class ResourceMissingError(UtilizationError):
    """Node does not report allocatable for the resource"""


class ResourceZeroError(UtilizationError):
    """Node reports zero allocatable for the resource"""


class NonPositiveCapacityError(UtilizationError):
    """Excluded DaemonSet/mirror pods request all of the node's allocatable"""


class PodClass(Enum):
    REGULAR = 'regular'
    # Requests are subtracted from allocatable rather than counted
    DENOMINATOR_ONLY = 'denominator-only'
    EXCLUDED = 'excluded'


@dataclass
class NodeInfo:
    """A node together with the pods bound to it"""
    node: object
    pods: List[object] = field(default_factory=list)

    @property
    def name(self) -> str:
        return kube_util.object_name(self.node)


@dataclass
class UtilizationInfo:
    """Utilization of a node"""
    cpu_util: float = 0.0
    mem_util: float = 0.0
    gpu_util: float = 0.0
    resource_name: str = ''  # resource with the highest utilization
    utilization: float = 0.0  # max(cpu_util, mem_util), or gpu_util on GPU nodes


def classify_pod(pod, skip_daemonset_pods: bool, skip_mirror_pods: bool, now: datetime) -> PodClass:
    if skip_daemonset_pods and kube_util.is_daemonset_pod(pod):
        return PodClass.DENOMINATOR_ONLY
    if skip_mirror_pods and kube_util.is_mirror_pod(pod):
        return PodClass.DENOMINATOR_ONLY
    if kube_util.is_pod_long_terminating(pod, now):
        return PodClass.EXCLUDED
    return PodClass.REGULAR


def _pod_request(pod, resource_name: str) -> Decimal:
    total = Decimal(0)
    for container in kube_util.pod_containers(pod):
        requests = kube_util.container_requests(container)
        if resource_name in requests:
            total += parse_quantity(requests[resource_name])
    return total


def calculate(
    node_info: NodeInfo,
    skip_daemonset_pods: bool,
    skip_mirror_pods: bool,
    gpu_label: str,
    now: datetime
) -> UtilizationInfo:
    """
    Calculate utilization of a node.

    Nodes with a GPU report GPU utilization only; CPU and memory are skipped.
    A GPU that is not ready yet (no allocatable) yields zero utilization so the
    node can still be considered for scale-down.

    Other nodes report max(cpu, memory) utilization; ties go to memory.

    Raises:
        UtilizationError: CPU or memory allocatable is missing, zero, or fully
            consumed by excluded pods
    """
    if kube_util.node_has_gpu(gpu_label, node_info.node):
        try:
            gpu_util = calculate_utilization_of_resource(
                node_info, kube_util.RESOURCE_NVIDIA_GPU, skip_daemonset_pods, skip_mirror_pods, now
            )
        except UtilizationError as e:
            logger.debug(f"Node {node_info.name} has unready GPU: {e}")
            return UtilizationInfo(gpu_util=0.0, resource_name=kube_util.RESOURCE_NVIDIA_GPU, utilization=0.0)

        return UtilizationInfo(gpu_util=gpu_util, resource_name=kube_util.RESOURCE_NVIDIA_GPU, utilization=gpu_util)

    cpu_util = calculate_utilization_of_resource(
        node_info, kube_util.RESOURCE_CPU, skip_daemonset_pods, skip_mirror_pods, now
    )
    mem_util = calculate_utilization_of_resource(
        node_info, kube_util.RESOURCE_MEMORY, skip_daemonset_pods, skip_mirror_pods, now
    )

    info = UtilizationInfo(cpu_util=cpu_util, mem_util=mem_util)
    if cpu_util > mem_util:
        info.resource_name = kube_util.RESOURCE_CPU
        info.utilization = cpu_util
    else:
        info.resource_name = kube_util.RESOURCE_MEMORY
        info.utilization = mem_util
    return info


def calculate_utilization_of_resource(
    node_info: NodeInfo,
    resource_name: str,
    skip_daemonset_pods: bool,
    skip_mirror_pods: bool,
    now: datetime
) -> float:
    """Sum of pod requests for resource_name divided by the node's effective allocatable"""
    allocatable = kube_util.node_allocatable(node_info.node)
    if resource_name not in allocatable:
        raise ResourceMissingError(f"failed to get {resource_name} from {node_info.name}")

    allocatable_milli = kube_util.milli_value(allocatable[resource_name])
    if allocatable_milli == 0:
        raise ResourceZeroError(f"{resource_name} is 0 at {node_info.name}")

    # Quantities are summed exactly and rounded to milli-units once
    pods_request = Decimal(0)
    excluded_request = Decimal(0)
    for pod in node_info.pods:
        pod_class = classify_pod(pod, skip_daemonset_pods, skip_mirror_pods, now)
        if pod_class is PodClass.DENOMINATOR_ONLY:
            excluded_request += _pod_request(pod, resource_name)
        elif pod_class is PodClass.REGULAR:
            pods_request += _pod_request(pod, resource_name)

    pods_request_milli = kube_util.milli_value(pods_request)
    excluded_request_milli = kube_util.milli_value(excluded_request)
    effective_milli = allocatable_milli - excluded_request_milli
    if effective_milli <= 0:
        raise NonPositiveCapacityError(
            f"{resource_name} at {node_info.name} is fully requested by excluded pods "
            f"({excluded_request_milli}m of {allocatable_milli}m)"
        )

    return pods_request_milli / effective_milli
