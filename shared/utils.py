"""
Shared utility functions for the migration platform.
"""
import hashlib
import json
import logging
import math
from typing import Any, Dict


def setup_logger(name: str, level: str = "INFO") -> logging.Logger:
    """
    Configure and return a logger instance.

    Args:
        name: Logger name (typically __name__)
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)
    logger.setLevel(getattr(logging, level.upper()))

    if not logger.handlers:
        handler = logging.StreamHandler()
        formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    return logger


def compute_checksum(data: Dict[str, Any]) -> str:
    """
    Compute a stable checksum for an object's metadata.

    Args:
        data: JSON-serialisable metadata dict

    Returns:
        MD5 checksum as hexadecimal string
    """
    hasher = hashlib.md5()
    hasher.update(json.dumps(data, sort_keys=True, default=str).encode('utf-8'))
    return hasher.hexdigest()


def calculate_percentage(part: int, total: int) -> int:
    """
    Calculate a whole-number percentage.

    Args:
        part: Number of matching items
        total: Total number of items

    Returns:
        Percentage rounded half up, 0 when total is 0
    """
    if total == 0:
        return 0
    return int(math.floor(part * 100 / total + 0.5))


def build_endpoint(host: str, port: int, username: str = "") -> str:
    """
    Build an endpoint string for logging purposes (never includes secrets).

    Args:
        host: Repository host
        port: Repository port
        username: Repository user

    Returns:
        Endpoint representation
    """
    if username:
        return f"{username}@{host}:{port}"
    return f"{host}:{port}"
