"""
Conversion of API diagnostics into editor diagnostics.

LSP ranges are already 0-indexed. The server may report positions past the
end of the document, so both ends are clamped to real lines and columns.
"""

from typing import List, Sequence

from api.types import Diagnostic, Position, Range


def _clamp(value: int, low: int, high: int) -> int:
    return max(low, min(value, high))


def clamp_position(position: Position, lines: Sequence[str]) -> Position:
    line = _clamp(position.line, 0, max(len(lines) - 1, 0))
    line_length = len(lines[line]) if lines else 0
    return Position(line=line, character=_clamp(position.character, 0, line_length))


def to_editor_diagnostic(
    diagnostic: Diagnostic,
    lines: Sequence[str],
    source: str,
) -> Diagnostic:
    """Clamp the range to ``lines`` and stamp ``source``."""
    clamped = Range(
        start=clamp_position(diagnostic.range.start, lines),
        end=clamp_position(diagnostic.range.end, lines),
    )
    return diagnostic.model_copy(update={"range": clamped, "source": source})


def to_editor_diagnostics(
    diagnostics: Sequence[Diagnostic],
    lines: Sequence[str],
    source: str,
) -> List[Diagnostic]:
    return [to_editor_diagnostic(d, lines, source) for d in diagnostics]
