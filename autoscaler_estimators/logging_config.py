"""
Structured Logging Configuration
JSON logging for log aggregation, plain text for local runs
"""

import logging
import os
import sys
from typing import Optional

from pythonjsonlogger import jsonlogger


def setup_structured_logging(
    log_level: str = "INFO",
    json_format: bool = None,
    extra_fields: Optional[dict] = None,
    stream=None
) -> logging.Logger:
    """
    Setup structured logging with JSON format

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        json_format: Force JSON format (None = auto-detect from LOG_FORMAT env)
        extra_fields: Additional fields to include in all log entries
        stream: Output stream (defaults to stderr so stdout stays parseable)

    Returns:
        Configured root logger
    """
    root_logger = logging.getLogger()
    level = getattr(logging, log_level.upper(), logging.INFO)
    root_logger.setLevel(level)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    if json_format is None:
        log_format = os.getenv('LOG_FORMAT', 'json').lower()
        use_json = log_format in ('json', 'structured')
    else:
        use_json = json_format

    handler = logging.StreamHandler(stream if stream is not None else sys.stderr)
    handler.setLevel(level)

    if use_json:
        formatter = jsonlogger.JsonFormatter(
            '%(timestamp)s %(levelname)s %(name)s %(message)s',
            timestamp=True,
            static_fields=extra_fields or {}
        )
    else:
        formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )
    handler.setFormatter(formatter)

    root_logger.addHandler(handler)
    return root_logger
