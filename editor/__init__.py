"""
Editor integration: protocols the host editor implements, diagnostic
conversion, and the DocumentLinter that ties triggers to the API client.
"""

from editor.diagnostics import clamp_position, to_editor_diagnostic, to_editor_diagnostics
from editor.linter import COMPLIANCE_SOURCE, DEBOUNCE_MS, LANGUAGE_ID, DocumentLinter
from editor.protocols import DiagnosticSink, Notifier, TextDocument, document_lines

__all__ = [
    "COMPLIANCE_SOURCE",
    "DEBOUNCE_MS",
    "LANGUAGE_ID",
    "DiagnosticSink",
    "DocumentLinter",
    "Notifier",
    "TextDocument",
    "clamp_position",
    "document_lines",
    "to_editor_diagnostic",
    "to_editor_diagnostics",
]
