"""
Document linting manager.

Glue between editor events and the shiftreset.run client:
- save      → schedule_lint (debounced per document)
- command   → lint_now / fix_document / format_document / check_compliance
- close     → close_document (cancel pending work, clear diagnostics)

Results are applied to the editor's DiagnosticSink only if the document has
not changed since dispatch and the run was not superseded.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Callable, Iterable, List, Optional

from api.cancellation import CancellationToken
from api.client import ShiftresetClient
from api.types import CheckOptions, ComplianceOptions
from editor.diagnostics import to_editor_diagnostics
from editor.protocols import DiagnosticSink, Notifier, TextDocument, document_lines
from lsp.parser import FANUC_TP_PROVIDER_ID
from scheduling.scheduler import KeyedOperationScheduler
from scheduling.staleness import StalenessGuard

logger = logging.getLogger(__name__)

LANGUAGE_ID = "fanuc-tp"
COMPLIANCE_SOURCE = "fanuc-tp-compliance"
DEBOUNCE_MS = 500

UNSUPPORTED_FILE_MESSAGE = "Current file is not a supported file (.tp or .ls)"


def _filename(uri: str) -> str:
    return uri.replace("\\", "/").rsplit("/", 1)[-1] or "stdin.ls"


class DocumentLinter:
    """
    Lints, fixes, formats and compliance-checks FANUC TP documents.

    Args:
        client:                 API client.
        diagnostics:            Sink for lint diagnostics.
        compliance_diagnostics: Sink for compliance diagnostics.
        scheduler:              Per-document scheduler (debounce 500ms if omitted).
        notifier:               Optional user-facing messages.
        log:                    Optional output-channel writer; receives
                                ``[timestamp] message`` lines.
    """

    def __init__(
        self,
        client: ShiftresetClient,
        diagnostics: DiagnosticSink,
        compliance_diagnostics: DiagnosticSink,
        scheduler: Optional[KeyedOperationScheduler] = None,
        notifier: Optional[Notifier] = None,
        log: Optional[Callable[[str], None]] = None,
    ):
        self.client = client
        self.diagnostics = diagnostics
        self.compliance_diagnostics = compliance_diagnostics
        self.scheduler = scheduler or KeyedOperationScheduler(debounce_ms=DEBOUNCE_MS)
        self.notifier = notifier
        self._log_sink = log
        self._active_lints = 0

    @property
    def active_lints(self) -> int:
        return self._active_lints

    # ──────────────────────────────────────────────────────────
    # LINT
    # ──────────────────────────────────────────────────────────

    async def lint_document(
        self,
        document: TextDocument,
        token: Optional[CancellationToken] = None,
    ) -> bool:
        """
        Lint ``document`` and publish its diagnostics.

        Args:
            document: The document to lint.
            token:    Fires when this run is superseded or torn down.

        Returns:
            True if diagnostics were applied.
        """
        if document.language_id != LANGUAGE_ID:
            return False

        token = token or CancellationToken()
        guard = StalenessGuard(lambda: document.version, label=document.uri)
        captured = guard.capture()
        self._begin_activity()

        try:
            if token.cancelled:
                return False

            content = document.text
            self._log(f"Linting {_filename(document.uri)} ({len(content)} bytes)")

            result = await self.client.lint(content, CheckOptions(signal=token))

            if token.cancelled:
                self._log("Lint superseded, discarding results")
                return False

            if not guard.is_current(captured):
                self._log("Document version changed during lint, discarding results")
                return False

            if not result.success:
                self._report_failure("Lint", result.error)
                return False

            diagnostics = result.data.diagnostics
            self._log(f"Parsed {len(diagnostics)} diagnostics from output")
            lines = document_lines(document)
            return guard.apply_if_current(
                captured,
                lambda: self.diagnostics.set(
                    document.uri,
                    to_editor_diagnostics(diagnostics, lines, FANUC_TP_PROVIDER_ID),
                ),
            )
        except Exception as exc:
            logger.exception("Unexpected error during lint")
            self._log(f"Unexpected error during lint: {exc}")
            return False
        finally:
            self._end_activity()

    def schedule_lint(self, document: TextDocument) -> None:
        """Debounced lint, e.g. on save."""
        if document.language_id != LANGUAGE_ID:
            return
        self.scheduler.schedule(document.uri, document, self._dispatch_lint)

    async def lint_now(self, document: TextDocument) -> bool:
        """Cancel pending work for ``document`` and lint immediately."""
        if document.language_id != LANGUAGE_ID:
            self._notify_info(UNSUPPORTED_FILE_MESSAGE)
            return False
        task = self.scheduler.execute_immediately(document.uri, document, self._dispatch_lint)
        return await task

    async def lint_open_documents(self, documents: Iterable[TextDocument]) -> List[bool]:
        """Lint every FANUC TP document already open at startup, concurrently."""
        supported = [d for d in documents if d.language_id == LANGUAGE_ID]
        return list(await asyncio.gather(*(self.lint_now(d) for d in supported)))

    async def _dispatch_lint(self, document: TextDocument, token: CancellationToken) -> bool:
        return await self.lint_document(document, token)

    # ──────────────────────────────────────────────────────────
    # FIX / FORMAT / COMPLIANCE
    # ──────────────────────────────────────────────────────────

    async def fix_document(self, document: TextDocument, unsafe: bool = False) -> bool:
        """
        Ask the API to fix issues, then re-lint.

        The /check endpoint does not return fixed content, so remaining
        issues are shown by linting again.
        """
        if document.language_id != LANGUAGE_ID:
            self._notify_info(UNSUPPORTED_FILE_MESSAGE)
            return False

        try:
            self._log(f"Fixing {_filename(document.uri)} (unsafe={unsafe})")
            result = await self.client.check(
                document.text, CheckOptions(fix=True, fix_unsafe=unsafe)
            )
            if not result.success:
                self._report_failure("Fix", result.error)
                return False

            fixed_count = len(result.data.diagnostics)
            if fixed_count == 0:
                self._notify_info("No issues to fix")
            else:
                self._notify_info(f"Attempted to fix {fixed_count} issue(s). Re-linting...")

            await self.lint_now(document)
            return True
        except Exception as exc:
            logger.exception("Unexpected error during fix")
            self._log(f"Unexpected error during fix: {exc}")
            self._notify_error(f"Fix failed: {exc}")
            return False

    async def format_document(self, document: TextDocument) -> Optional[str]:
        """
        Format ``document``.

        Returns:
            The formatted text (a full-document replacement), or None.
        """
        if document.language_id != LANGUAGE_ID:
            return None

        try:
            self._log(f"Formatting {_filename(document.uri)}")
            result = await self.client.format(document.text)
            if not result.success:
                self._report_failure("Format", result.error)
                return None

            self._log("Formatting completed successfully")
            return result.data.content
        except Exception as exc:
            logger.exception("Unexpected error during format")
            self._log(f"Unexpected error during format: {exc}")
            self._notify_error(f"Format failed: {exc}")
            return None

    async def check_compliance(
        self,
        document: TextDocument,
        rules: Optional[List[str]] = None,
    ) -> bool:
        """Run a compliance check and publish results to the compliance sink."""
        if document.language_id != LANGUAGE_ID:
            self._notify_info(UNSUPPORTED_FILE_MESSAGE)
            return False

        guard = StalenessGuard(lambda: document.version, label=document.uri)
        captured = guard.capture()

        try:
            self._log(f"Checking compliance for {_filename(document.uri)}")
            result = await self.client.compliance(document.text, ComplianceOptions(select=rules))
            if not result.success:
                self._report_failure("Compliance", result.error)
                return False

            diagnostics = result.data.diagnostics
            self._log(f"Found {len(diagnostics)} compliance issues")
            lines = document_lines(document)
            applied = guard.apply_if_current(
                captured,
                lambda: self.compliance_diagnostics.set(
                    document.uri,
                    to_editor_diagnostics(diagnostics, lines, COMPLIANCE_SOURCE),
                ),
            )
            if not applied:
                self._log("Document version changed during compliance check, discarding results")
                return False

            if diagnostics:
                self._notify_info(f"Found {len(diagnostics)} compliance issue(s)")
            else:
                self._notify_info("No compliance issues found")
            return True
        except Exception as exc:
            logger.exception("Unexpected error during compliance check")
            self._log(f"Unexpected error during compliance check: {exc}")
            self._notify_error(f"Compliance check failed: {exc}")
            return False

    # ──────────────────────────────────────────────────────────
    # LIFECYCLE
    # ──────────────────────────────────────────────────────────

    def clear_diagnostics(self, uri: str) -> None:
        self.diagnostics.delete(uri)
        self.compliance_diagnostics.delete(uri)

    def close_document(self, document: TextDocument) -> None:
        """Cancel pending/in-flight lints and clear diagnostics."""
        self.scheduler.teardown(document.uri)
        self.clear_diagnostics(document.uri)

    def dispose(self) -> None:
        self.scheduler.dispose()

    # ──────────────────────────────────────────────────────────
    # HELPERS
    # ──────────────────────────────────────────────────────────

    def _report_failure(self, operation: str, error) -> None:
        self._log(f"{operation} API error: {error.message} ({error.kind.value})")
        self._notify_error(f"shiftreset.run: {error.message}")

    def _log(self, message: str) -> None:
        logger.info(message)
        if self._log_sink is not None:
            timestamp = datetime.now(timezone.utc).isoformat()
            self._log_sink(f"[{timestamp}] {message}")

    def _notify_error(self, message: str) -> None:
        if self.notifier is not None:
            self.notifier.show_error(message)

    def _notify_info(self, message: str) -> None:
        if self.notifier is not None:
            self.notifier.show_info(message)

    def _begin_activity(self) -> None:
        self._active_lints += 1

    def _end_activity(self) -> None:
        self._active_lints = max(0, self._active_lints - 1)
