"""
Configuration Loader
Reads estimator settings from environment variables
"""

import os
import logging
from dataclasses import dataclass
from typing import Optional

from autoscaler_estimators.config_validator import ConfigValidator
from autoscaler_estimators.kube_util import GPU_LABEL
from autoscaler_estimators.price_catalog import PriceCatalog, load_price_catalog

logger = logging.getLogger(__name__)


@dataclass
class EstimatorConfig:
    """Estimator configuration"""
    log_level: str
    log_format: str

    # Utilization
    skip_daemonset_pods: bool
    skip_mirror_pods: bool
    gpu_label: str

    # Pricing
    price_catalog_file: Optional[str] = None


class ConfigLoader:
    """Load configuration from the environment"""

    def __init__(self, environ: Optional[dict] = None):
        self.environ = environ if environ is not None else os.environ
        self.config: Optional[EstimatorConfig] = None

    def load_config(self) -> EstimatorConfig:
        """Load configuration from environment variables"""
        env = self.environ

        log_level = ConfigValidator.validate_log_level(env.get("LOG_LEVEL", "INFO"))
        log_format = ConfigValidator.validate_log_format(env.get("LOG_FORMAT", "json"))

        skip_daemonset_pods = ConfigValidator.validate_bool(
            env.get("SKIP_DAEMONSET_PODS", "false"), "SKIP_DAEMONSET_PODS"
        )
        skip_mirror_pods = ConfigValidator.validate_bool(
            env.get("SKIP_MIRROR_PODS", "false"), "SKIP_MIRROR_PODS"
        )
        gpu_label = ConfigValidator.validate_label_key(env.get("GPU_LABEL", GPU_LABEL))

        price_catalog_file = None
        if catalog_path := env.get("PRICE_CATALOG_FILE"):
            price_catalog_file = ConfigValidator.validate_catalog_path(catalog_path)

        self.config = EstimatorConfig(
            log_level=log_level,
            log_format=log_format,
            skip_daemonset_pods=skip_daemonset_pods,
            skip_mirror_pods=skip_mirror_pods,
            gpu_label=gpu_label,
            price_catalog_file=price_catalog_file
        )

        logger.info(
            f"Configuration loaded: "
            f"skip_daemonset_pods={skip_daemonset_pods}, "
            f"skip_mirror_pods={skip_mirror_pods}, "
            f"gpu_label={gpu_label}, "
            f"catalog={price_catalog_file or 'built-in'}"
        )

        return self.config

    def get_config(self) -> EstimatorConfig:
        """Get current configuration"""
        if not self.config:
            return self.load_config()
        return self.config

    def load_price_catalog(self) -> PriceCatalog:
        """Catalog from PRICE_CATALOG_FILE, or the built-in GCE tables"""
        config = self.get_config()
        if config.price_catalog_file:
            return load_price_catalog(config.price_catalog_file)
        return PriceCatalog.default()
