"""
Editor collaborator contracts.

The integration layer never imports an editor SDK. The host editor adapts its
own document and diagnostic-collection objects to these protocols.
"""

from typing import List, Protocol, Sequence

from api.types import Diagnostic


class TextDocument(Protocol):
    """An open document. ``version`` increases on every edit."""

    @property
    def uri(self) -> str: ...

    @property
    def version(self) -> int: ...

    @property
    def language_id(self) -> str: ...

    @property
    def text(self) -> str: ...


class DiagnosticSink(Protocol):
    """Per-document diagnostic store owned by the editor."""

    def set(self, uri: str, diagnostics: Sequence[Diagnostic]) -> None: ...

    def delete(self, uri: str) -> None: ...


class Notifier(Protocol):
    """User-facing messages (toasts, status messages)."""

    def show_error(self, message: str) -> None: ...

    def show_info(self, message: str) -> None: ...


def document_lines(document: TextDocument) -> List[str]:
    """Lines as the editor counts them: ``"a\\n"`` has two lines."""
    return [line.rstrip("\r") for line in document.text.split("\n")]
