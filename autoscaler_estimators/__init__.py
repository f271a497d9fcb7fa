"""
Autoscaler Estimators
Node/pod price estimation and node utilization for cluster autoscaling
"""

__version__ = "0.1.0"

from autoscaler_estimators.price_catalog import PriceCatalog, load_price_catalog
from autoscaler_estimators.price_model import GcePriceModel, PriceModel
from autoscaler_estimators.utilization import (
    NodeInfo,
    UtilizationError,
    UtilizationInfo,
    calculate,
    calculate_utilization_of_resource,
)

__all__ = [
    'GcePriceModel',
    'NodeInfo',
    'PriceCatalog',
    'PriceModel',
    'UtilizationError',
    'UtilizationInfo',
    'calculate',
    'calculate_utilization_of_resource',
    'load_price_catalog',
]
