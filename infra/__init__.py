"""
Infrastructure module exports.

Configuration and bootstrap for the integration layer.
"""

from .config import IntegrationConfig, get_config
from .bootstrap import IntegrationBootstrap, bootstrap_integration, configure_logging

__all__ = [
    "IntegrationConfig",
    "get_config",
    "IntegrationBootstrap",
    "bootstrap_integration",
    "configure_logging",
]
