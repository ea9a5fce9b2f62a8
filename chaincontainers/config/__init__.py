"""
Configuration and constants.
"""

from chaincontainers.config.config import RuntimeConfig, load_config
from chaincontainers.config.constants import LogVerbosity, ServiceType

__all__ = [
    # config.py
    "RuntimeConfig",
    "load_config",
    # constants.py
    "LogVerbosity",
    "ServiceType",
]
