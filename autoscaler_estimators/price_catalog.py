"""
Price Catalog
Read-only GCE price tables consumed by the price model

Tables are keyed by instance family (the part of a machine type before the
first '-'), by full machine type, or by GPU type. A catalog never changes after
construction, so one instance can be shared by any number of threads.
"""

import logging
import math
from dataclasses import dataclass, field, fields
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Sequence

import yaml

logger = logging.getLogger(__name__)


# Flat prices (us-central1, on-demand, per hour)
# Source: https://cloud.google.com/compute/vm-instance-pricing
BASE_CPU_PRICE_PER_HOUR = 0.033174
BASE_MEMORY_PRICE_PER_HOUR_PER_GB = 0.004446
BASE_GPU_PRICE_PER_HOUR = 0.700

# Used when the family has no entry in the discount tables
PREEMPTIBLE_DISCOUNT = 0.00698 / 0.033174

PREDEFINED_CPU_PRICE_PER_HOUR = {
    'c2': 0.03398,
    'e2': 0.021811,
    'm1': 0.0348,
    'n1': 0.031611,
    'n2': 0.031611,
    'n2d': 0.027502,
}

PREDEFINED_MEMORY_PRICE_PER_HOUR_PER_GB = {
    'c2': 0.00455,
    'e2': 0.002923,
    'm1': 0.0051,
    'n1': 0.004237,
    'n2': 0.004237,
    'n2d': 0.003686,
}

PREDEFINED_PREEMPTIBLE_DISCOUNT = {
    'c2': 0.00822 / 0.03398,
    'e2': 0.006543 / 0.021811,
    'm1': 0.00733 / 0.0348,
    'n1': 0.006655 / 0.031611,
    'n2': 0.007650 / 0.031611,
    'n2d': 0.002773 / 0.027502,
}

CUSTOM_CPU_PRICE_PER_HOUR = {
    'e2': 0.022890,
    'n1': 0.033174,
    'n2': 0.033174,
    'n2d': 0.028877,
}

CUSTOM_MEMORY_PRICE_PER_HOUR_PER_GB = {
    'e2': 0.003067,
    'n1': 0.004446,
    'n2': 0.004446,
    'n2d': 0.003870,
}

CUSTOM_PREEMPTIBLE_DISCOUNT = {
    'e2': 0.006867 / 0.022890,
    'n1': 0.00698 / 0.033174,
    'n2': 0.00802 / 0.033174,
    'n2d': 0.002908 / 0.028877,
}

INSTANCE_PRICES = {
    # General Purpose (E2)
    'e2-micro': 0.00838,
    'e2-small': 0.016751,
    'e2-medium': 0.033503,
    'e2-standard-2': 0.067006,
    'e2-standard-4': 0.134012,
    'e2-standard-8': 0.268024,
    'e2-standard-16': 0.536048,
    'e2-highmem-2': 0.090381,
    'e2-highmem-4': 0.180763,
    'e2-highcpu-2': 0.049468,
    'e2-highcpu-4': 0.098937,

    # General Purpose (N1)
    'n1-standard-1': 0.0475,
    'n1-standard-2': 0.0950,
    'n1-standard-4': 0.1900,
    'n1-standard-8': 0.3800,
    'n1-standard-16': 0.7600,
    'n1-highmem-2': 0.1184,
    'n1-highmem-4': 0.2368,
    'n1-highcpu-2': 0.0709,
    'n1-highcpu-4': 0.1418,

    # General Purpose (N2)
    'n2-standard-2': 0.097118,
    'n2-standard-4': 0.194236,
    'n2-standard-8': 0.388472,

    # Compute Optimized (C2)
    'c2-standard-4': 0.2088,
    'c2-standard-8': 0.4176,
}

PREEMPTIBLE_INSTANCE_PRICES = {
    'e2-micro': 0.002513,
    'e2-small': 0.005027,
    'e2-medium': 0.010053,
    'e2-standard-2': 0.020107,
    'e2-standard-4': 0.040214,
    'e2-standard-8': 0.080428,
    'e2-standard-16': 0.160856,
    'e2-highmem-2': 0.027118,
    'e2-highmem-4': 0.054236,
    'e2-highcpu-2': 0.014842,
    'e2-highcpu-4': 0.029684,

    'n1-standard-1': 0.0100,
    'n1-standard-2': 0.0200,
    'n1-standard-4': 0.0400,
    'n1-standard-8': 0.0800,
    'n1-standard-16': 0.1600,
    'n1-highmem-2': 0.0250,
    'n1-highmem-4': 0.0500,
    'n1-highcpu-2': 0.0150,
    'n1-highcpu-4': 0.0300,

    'n2-standard-2': 0.023500,
    'n2-standard-4': 0.047000,
    'n2-standard-8': 0.094000,

    'c2-standard-4': 0.0505,
    'c2-standard-8': 0.1010,
}

GPU_PRICES = {
    'nvidia-tesla-t4': 0.35,
    'nvidia-tesla-p4': 0.60,
    'nvidia-tesla-v100': 2.48,
    'nvidia-tesla-p100': 1.46,
    'nvidia-tesla-k80': 0.45,
    'nvidia-tesla-a100': 2.934,
    'nvidia-l4': 0.56,
}

PREEMPTIBLE_GPU_PRICES = {
    'nvidia-tesla-t4': 0.11,
    'nvidia-tesla-p4': 0.216,
    'nvidia-tesla-v100': 0.74,
    'nvidia-tesla-p100': 0.43,
    'nvidia-tesla-k80': 0.135,
    'nvidia-tesla-a100': 0.88,
    'nvidia-l4': 0.22,
}

_BASE_PRICE_FIELDS = ('base_cpu_price', 'base_memory_price', 'base_gpu_price')
_DISCOUNT_FIELDS = ('predefined_preemptible_discount', 'custom_preemptible_discount')


def lookup_price(key: str, tables: Sequence[Mapping[str, float]]) -> Optional[float]:
    """Return the first entry for key across tables, in order, or None"""
    for table in tables:
        if key in table:
            return table[key]
    return None


def resolve_price(key: str, tables: Sequence[Mapping[str, float]], default: float) -> float:
    """Family-specific price when one of the tables knows the key, else the flat default"""
    price = lookup_price(key, tables)
    if price is None:
        return default
    return price


@dataclass(frozen=True)
class PriceCatalog:
    """Immutable bundle of price tables. All prices in USD per hour."""
    base_cpu_price: float = BASE_CPU_PRICE_PER_HOUR  # per core
    base_memory_price: float = BASE_MEMORY_PRICE_PER_HOUR_PER_GB  # per GiB
    base_gpu_price: float = BASE_GPU_PRICE_PER_HOUR  # per GPU
    preemptible_discount: float = PREEMPTIBLE_DISCOUNT

    predefined_cpu_prices: Mapping[str, float] = field(default_factory=lambda: dict(PREDEFINED_CPU_PRICE_PER_HOUR))
    predefined_memory_prices: Mapping[str, float] = field(default_factory=lambda: dict(PREDEFINED_MEMORY_PRICE_PER_HOUR_PER_GB))
    custom_cpu_prices: Mapping[str, float] = field(default_factory=lambda: dict(CUSTOM_CPU_PRICE_PER_HOUR))
    custom_memory_prices: Mapping[str, float] = field(default_factory=lambda: dict(CUSTOM_MEMORY_PRICE_PER_HOUR_PER_GB))

    instance_prices: Mapping[str, float] = field(default_factory=lambda: dict(INSTANCE_PRICES))
    preemptible_instance_prices: Mapping[str, float] = field(default_factory=lambda: dict(PREEMPTIBLE_INSTANCE_PRICES))

    gpu_prices: Mapping[str, float] = field(default_factory=lambda: dict(GPU_PRICES))
    preemptible_gpu_prices: Mapping[str, float] = field(default_factory=lambda: dict(PREEMPTIBLE_GPU_PRICES))

    predefined_preemptible_discount: Mapping[str, float] = field(default_factory=lambda: dict(PREDEFINED_PREEMPTIBLE_DISCOUNT))
    custom_preemptible_discount: Mapping[str, float] = field(default_factory=lambda: dict(CUSTOM_PREEMPTIBLE_DISCOUNT))

    def __post_init__(self):
        # Copy every table into a read-only view so callers cannot mutate it later
        for f in fields(self):
            current = getattr(self, f.name)
            if isinstance(current, Mapping):
                object.__setattr__(self, f.name, MappingProxyType(dict(current)))

    @classmethod
    def default(cls) -> 'PriceCatalog':
        """Catalog with the built-in GCE tables"""
        return cls()

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'PriceCatalog':
        """
        Build a catalog from a plain mapping (e.g. a parsed YAML document).

        Keys match the dataclass field names; sections that are left out keep
        the built-in defaults. Unknown keys are rejected.

        Raises:
            ValueError: unknown key, non-numeric price, negative price or a
                discount outside [0, 1]
        """
        data = data or {}
        if not isinstance(data, Mapping):
            raise ValueError(f"Price catalog must be a mapping, got {type(data).__name__}")

        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ValueError(f"Unknown price catalog keys: {', '.join(unknown)}")

        kwargs = {}
        for name, raw in data.items():
            if name in _BASE_PRICE_FIELDS or name == 'preemptible_discount':
                kwargs[name] = _validate_price(name, raw, discount=name == 'preemptible_discount')
            else:
                if not isinstance(raw, Mapping):
                    raise ValueError(f"Price catalog section '{name}' must be a mapping")
                kwargs[name] = {
                    str(key): _validate_price(f"{name}[{key}]", price, discount=name in _DISCOUNT_FIELDS)
                    for key, price in raw.items()
                }

        return cls(**kwargs)


def _validate_price(name: str, raw: Any, discount: bool = False) -> float:
    if isinstance(raw, bool):
        raise ValueError(f"Invalid price for {name}: {raw!r}. Must be a number")
    try:
        price = float(raw)
    except (TypeError, ValueError) as e:
        raise ValueError(f"Invalid price for {name}: {raw!r}. Must be a number") from e
    if not math.isfinite(price):
        raise ValueError(f"Price for {name} must be finite, got {price}")
    if price < 0:
        raise ValueError(f"Price for {name} must be non-negative, got {price}")
    if discount and price > 1:
        raise ValueError(f"Discount for {name} must be between 0 and 1, got {price}")
    return price


def load_price_catalog(path: str) -> PriceCatalog:
    """Load a catalog from a YAML file"""
    with open(path) as f:
        data = yaml.safe_load(f)

    catalog = PriceCatalog.from_dict(data)
    logger.info(
        f"Loaded price catalog from {path}: "
        f"{len(catalog.instance_prices)} instance types, "
        f"{len(catalog.gpu_prices)} GPU types"
    )
    return catalog
