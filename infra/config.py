"""
Integration configuration.

Environment-based settings with defaults that talk to the public
shiftreset.run API. A ``.env`` file at the project root is loaded if present.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional

from dotenv import load_dotenv

from api.client import API_BASE_URL, DEFAULT_TIMEOUT_MS, ShiftresetClient
from editor.linter import DEBOUNCE_MS, DocumentLinter
from editor.protocols import DiagnosticSink, Notifier
from scheduling.scheduler import KeyedOperationScheduler

# Load environment variables from .env file
env_path = Path(__file__).parent.parent / ".env"
load_dotenv(env_path)


@dataclass
class IntegrationConfig:
    """Integration configuration from environment."""

    base_url: str = API_BASE_URL
    timeout_ms: int = DEFAULT_TIMEOUT_MS
    debounce_ms: int = DEBOUNCE_MS
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "IntegrationConfig":
        """
        Load configuration from environment variables.

        SHIFTRESET_BASE_URL    API host (default https://shiftreset.run)
        SHIFTRESET_TIMEOUT_MS  per-request timeout (default 30000)
        SHIFTRESET_DEBOUNCE_MS save-triggered lint debounce (default 500)
        SHIFTRESET_LOG_LEVEL   logging level (default INFO)
        """
        return cls(
            base_url=os.getenv("SHIFTRESET_BASE_URL", API_BASE_URL),
            timeout_ms=int(os.getenv("SHIFTRESET_TIMEOUT_MS", str(DEFAULT_TIMEOUT_MS))),
            debounce_ms=int(os.getenv("SHIFTRESET_DEBOUNCE_MS", str(DEBOUNCE_MS))),
            log_level=os.getenv("SHIFTRESET_LOG_LEVEL", "INFO").upper(),
        )

    def create_client(self) -> ShiftresetClient:
        """Create the API client."""
        return ShiftresetClient(timeout_ms=self.timeout_ms, base_url=self.base_url)

    def create_scheduler(self) -> KeyedOperationScheduler:
        """Create the per-document lint scheduler."""
        return KeyedOperationScheduler(debounce_ms=self.debounce_ms)

    def create_linter(
        self,
        diagnostics: DiagnosticSink,
        compliance_diagnostics: DiagnosticSink,
        notifier: Optional[Notifier] = None,
        log: Optional[Callable[[str], None]] = None,
        client: Optional[ShiftresetClient] = None,
    ) -> DocumentLinter:
        """Create a DocumentLinter wired to the editor's sinks."""
        return DocumentLinter(
            client=client or self.create_client(),
            diagnostics=diagnostics,
            compliance_diagnostics=compliance_diagnostics,
            scheduler=self.create_scheduler(),
            notifier=notifier,
            log=log,
        )


def get_config() -> IntegrationConfig:
    """Get integration configuration from the environment."""
    return IntegrationConfig.from_env()
