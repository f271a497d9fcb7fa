"""
Configuration Validator
Validates environment variables before they reach the estimators
"""

import os

VALID_LOG_LEVELS = ('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL')
VALID_LOG_FORMATS = ('json', 'structured', 'text')
_TRUE_VALUES = ('true', '1', 'yes')
_FALSE_VALUES = ('false', '0', 'no', '')


class ConfigValidator:
    """Validate configuration values"""

    @staticmethod
    def validate_log_level(value: str) -> str:
        """Validate log level"""
        level = (value or '').strip().upper()
        if level not in VALID_LOG_LEVELS:
            raise ValueError(f"Invalid LOG_LEVEL: {value}. Must be one of {', '.join(VALID_LOG_LEVELS)}")
        return level

    @staticmethod
    def validate_log_format(value: str) -> str:
        """Validate log format"""
        log_format = (value or '').strip().lower()
        if log_format not in VALID_LOG_FORMATS:
            raise ValueError(f"Invalid LOG_FORMAT: {value}. Must be one of {', '.join(VALID_LOG_FORMATS)}")
        return log_format

    @staticmethod
    def validate_bool(value: str, name: str) -> bool:
        """Validate a boolean flag"""
        normalized = (value or '').strip().lower()
        if normalized in _TRUE_VALUES:
            return True
        if normalized in _FALSE_VALUES:
            return False
        raise ValueError(f"Invalid {name}: {value}. Must be true or false")

    @staticmethod
    def validate_label_key(value: str, name: str = "GPU_LABEL") -> str:
        """Validate a Kubernetes label key"""
        key = (value or '').strip()
        if not key:
            raise ValueError(f"{name} is required")
        if len(key) > 316:  # 253 prefix + '/' + 63 name
            raise ValueError(f"{name} too long (max 316 chars)")
        if ' ' in key:
            raise ValueError(f"Invalid {name}: {value}. Must not contain spaces")
        return key

    @staticmethod
    def validate_catalog_path(path: str) -> str:
        """Validate price catalog file path"""
        if not path:
            raise ValueError("PRICE_CATALOG_FILE is required")
        if len(path) > 512:
            raise ValueError(f"PRICE_CATALOG_FILE too long (max 512 chars)")
        if not os.path.isfile(path):
            raise ValueError(f"PRICE_CATALOG_FILE does not exist: {path}")
        return path
