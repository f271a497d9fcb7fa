"""
Price Model
Estimates the cost of running a node or a pod over a time window

Node prices come from the full-instance tables when the machine type is known,
falling back to per-core / per-GiB component pricing with a preemptible
discount. Pod prices are the theoretical minimum on a perfectly sized machine.
All prices are in USD.
"""

import logging
import math
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Dict, Optional

from autoscaler_estimators import kube_util
from autoscaler_estimators.price_catalog import PriceCatalog, lookup_price, resolve_price

logger = logging.getLogger(__name__)

BYTES_PER_GIB = 1024 ** 3


def get_hours(start_time: datetime, end_time: datetime) -> float:
    """Billed hours between two instants, rounded up to the whole minute"""
    minutes = math.ceil((end_time - start_time).total_seconds() / 60.0)
    return minutes / 60.0


def get_instance_family(instance_type: Optional[str]) -> str:
    """'n1-standard-8' -> 'n1'"""
    if not instance_type:
        return ''
    return instance_type.split('-')[0]


def is_instance_custom(instance_type: Optional[str]) -> bool:
    return bool(instance_type) and 'custom' in instance_type


class PriceModel(ABC):
    """Prices nodes and pods for cost-aware scaling decisions"""

    @abstractmethod
    def node_price(self, node, start_time: datetime, end_time: datetime) -> float:
        """Price of running the given node between start_time and end_time"""

    @abstractmethod
    def pod_price(self, pod, start_time: datetime, end_time: datetime) -> float:
        """Theoretical minimum price of running the pod between start_time and end_time"""


class GcePriceModel(PriceModel):
    """PriceModel backed by a GCE PriceCatalog"""

    def __init__(self, catalog: Optional[PriceCatalog] = None, gpu_label: str = kube_util.GPU_LABEL):
        self.catalog = catalog if catalog is not None else PriceCatalog.default()
        self.gpu_label = gpu_label

    def node_price(self, node, start_time: datetime, end_time: datetime) -> float:
        hours = get_hours(start_time, end_time)
        labels = kube_util.node_labels(node)
        capacity = kube_util.node_capacity(node)
        preemptible = kube_util.has_preemptible_pricing(node)
        instance_type = kube_util.get_instance_type_from_labels(labels)
        price = 0.0

        # Base instance price
        if instance_type is not None:
            price_map = self.catalog.preemptible_instance_prices if preemptible else self.catalog.instance_prices
            price_per_hour = lookup_price(instance_type, [price_map])
            if price_per_hour is not None:
                price = price_per_hour * hours
            else:
                logger.warning(
                    f"Pricing information not found for instance type {instance_type}; "
                    f"will fallback to default pricing"
                )
                price = self._base_price(capacity, instance_type, hours)
                price *= self.get_preemptible_discount(node)

        # GPUs
        gpu_capacity = capacity.get(kube_util.RESOURCE_NVIDIA_GPU)
        if gpu_capacity is not None:
            gpu_milli = kube_util.milli_value(gpu_capacity)
            if gpu_milli:
                gpu_price = self._gpu_price_per_hour(labels, preemptible)
                price += gpu_milli / 1000.0 * gpu_price * hours

        # Local SSDs and persistent disks are not priced.
        return price

    def pod_price(self, pod, start_time: datetime, end_time: datetime) -> float:
        hours = get_hours(start_time, end_time)
        price = 0.0
        for container in kube_util.pod_containers(pod):
            requests = kube_util.container_requests(container)
            price += self._base_price(requests, None, hours)
            price += self._additional_price(requests, hours)
        return price

    def get_preemptible_discount(self, node) -> float:
        """Multiplier applied to component pricing of preemptible and spot nodes"""
        if not kube_util.has_preemptible_pricing(node):
            return 1.0
        instance_type = kube_util.get_instance_type_from_labels(kube_util.node_labels(node))
        if instance_type is None:
            return 1.0

        discount_map = self.catalog.predefined_preemptible_discount
        if is_instance_custom(instance_type):
            discount_map = self.catalog.custom_preemptible_discount
        return resolve_price(get_instance_family(instance_type), [discount_map], self.catalog.preemptible_discount)

    def _gpu_price_per_hour(self, labels: Dict[str, str], preemptible: bool) -> float:
        gpu_type = labels.get(self.gpu_label)
        if gpu_type is None:
            return self.catalog.base_gpu_price

        price_map = self.catalog.preemptible_gpu_prices if preemptible else self.catalog.gpu_prices
        price = lookup_price(gpu_type, [price_map])
        if price is None:
            logger.warning(f"Pricing information not found for GPU type {gpu_type}; will fallback to default pricing")
            return self.catalog.base_gpu_price
        return price

    def _base_price(self, resources: Dict[str, str], instance_type: Optional[str], hours: float) -> float:
        """CPU and memory price of a resource list, using family prices where the catalog has them"""
        if not resources:
            return 0.0

        family = get_instance_family(instance_type)
        if is_instance_custom(instance_type):
            cpu_map, memory_map = self.catalog.custom_cpu_prices, self.catalog.custom_memory_prices
        else:
            cpu_map, memory_map = self.catalog.predefined_cpu_prices, self.catalog.predefined_memory_prices

        cpu_price = resolve_price(family, [cpu_map], self.catalog.base_cpu_price)
        memory_price = resolve_price(family, [memory_map], self.catalog.base_memory_price)

        cpu_milli = kube_util.milli_value(resources.get(kube_util.RESOURCE_CPU, 0))
        memory_bytes = kube_util.value(resources.get(kube_util.RESOURCE_MEMORY, 0))

        price = cpu_milli / 1000.0 * cpu_price * hours
        price += memory_bytes / BYTES_PER_GIB * memory_price * hours
        return price

    def _additional_price(self, resources: Dict[str, str], hours: float) -> float:
        """GPU price of a resource list at the flat GPU rate"""
        if not resources:
            return 0.0
        gpu_milli = kube_util.milli_value(resources.get(kube_util.RESOURCE_NVIDIA_GPU, 0))
        return gpu_milli / 1000.0 * self.catalog.base_gpu_price * hours
