"""
Integration bootstrap.

Singleton pattern: one client and logging setup per process. The editor
host calls ``bootstrap_integration()`` on activation and ``reset()`` on
deactivation.
"""

import logging
from typing import Callable, Optional

from api.client import ShiftresetClient
from editor.linter import DocumentLinter
from editor.protocols import DiagnosticSink, Notifier

from .config import IntegrationConfig, get_config

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(level: str = "INFO") -> None:
    """Configure root logging for the integration layer."""
    logging.basicConfig(level=getattr(logging, level, logging.INFO), format=LOG_FORMAT)


class IntegrationBootstrap:
    """
    Bootstrap the integration from configuration.

    Singleton pattern - single instance per process.
    """

    _instance: Optional["IntegrationBootstrap"] = None

    def __init__(self, config: Optional[IntegrationConfig] = None):
        """Initialize bootstrap with configuration."""
        self.config = config or get_config()
        configure_logging(self.config.log_level)
        self.client = self.config.create_client()
        self._linters = []

    @classmethod
    def get_instance(cls, config: Optional[IntegrationConfig] = None) -> "IntegrationBootstrap":
        """
        Get singleton instance.

        Args:
            config: Optional custom configuration (only used first time)

        Returns:
            Singleton IntegrationBootstrap instance
        """
        if cls._instance is None:
            cls._instance = cls(config)
        return cls._instance

    @classmethod
    def reset(cls):
        """Dispose linters and reset the singleton (deactivation, tests)."""
        if cls._instance is not None:
            for linter in cls._instance._linters:
                linter.dispose()
        cls._instance = None

    def get_client(self) -> ShiftresetClient:
        """Get the shared API client."""
        return self.client

    def create_linter(
        self,
        diagnostics: DiagnosticSink,
        compliance_diagnostics: DiagnosticSink,
        notifier: Optional[Notifier] = None,
        log: Optional[Callable[[str], None]] = None,
    ) -> DocumentLinter:
        """Create a DocumentLinter sharing this bootstrap's client."""
        linter = self.config.create_linter(
            diagnostics,
            compliance_diagnostics,
            notifier=notifier,
            log=log,
            client=self.client,
        )
        self._linters.append(linter)
        return linter

    def __repr__(self) -> str:
        return (
            f"IntegrationBootstrap(base_url={self.config.base_url}, "
            f"timeout_ms={self.config.timeout_ms}, "
            f"debounce_ms={self.config.debounce_ms})"
        )


def bootstrap_integration(config: Optional[IntegrationConfig] = None) -> IntegrationBootstrap:
    """
    Bootstrap the integration.

    Args:
        config: Optional custom configuration

    Returns:
        IntegrationBootstrap singleton
    """
    return IntegrationBootstrap.get_instance(config)
