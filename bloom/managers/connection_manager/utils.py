"""
Connection Manager Utilities

Backoff arithmetic and dynamic driver loading.
"""

import importlib
from typing import Any

from bloom.errors import ConfigurationError


def compute_backoff_delay(attempts: int, base_delay: float, max_delay: float) -> float:
    """
    Reconnect delay after `attempts` failed attempts

    Args:
        attempts: Consecutive failed attempts so far (>= 0)
        base_delay: Delay for the first retry in seconds
        max_delay: Upper bound in seconds

    Returns:
        min(base_delay * 2 ** attempts, max_delay)
    """
    if attempts < 0:
        raise ValueError(f"attempts must be >= 0, got {attempts}")
    # Cap the exponent so huge attempt counts cannot overflow a float
    exponent = min(attempts, 64)
    return min(base_delay * (2 ** exponent), max_delay)


def load_driver(driver_path: str, **kwargs: Any) -> Any:
    """
    Build a connection driver from a 'package.module:factory' path

    Args:
        driver_path: Import path of a factory (class or function) returning a ConnectionDriver
        **kwargs: Passed to the factory

    Raises:
        ConfigurationError: If the path is malformed or cannot be imported
    """
    module_name, sep, attr = (driver_path or "").partition(":")
    if not sep or not module_name or not attr:
        raise ConfigurationError(f"BLOOM_DRIVER must look like 'package.module:factory', got {driver_path!r}")

    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise ConfigurationError(f"Cannot import driver module {module_name}: {e}") from e

    if not hasattr(module, attr):
        raise ConfigurationError(f"Driver module {module_name} has no attribute {attr}")

    factory = getattr(module, attr)
    if not callable(factory):
        raise ConfigurationError(f"Driver factory {driver_path} is not callable")

    driver = factory(**kwargs)
    if not hasattr(driver, "connect"):
        raise ConfigurationError(f"Driver from {driver_path} does not provide connect()")
    return driver
