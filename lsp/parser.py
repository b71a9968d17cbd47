"""
LSP diagnostic response validation.

Handles:
- Valid JSON with a diagnostics array
- Empty or whitespace-only input (empty batch)
- Invalid JSON (warning, empty batch)
- Structurally wrong payloads (warning, empty batch)

One malformed diagnostic drops the WHOLE batch. Nothing here raises.
"""

import json
import logging
from dataclasses import dataclass
from typing import Any, Generic, Optional, Type, TypeVar

from pydantic import BaseModel, ValidationError

from api.types import Diagnostic, DiagnosticBatch, Position, Range

logger = logging.getLogger(__name__)

# Provider ID for FANUC TP diagnostics.
FANUC_TP_PROVIDER_ID = "fanuc-tp"

M = TypeVar("M", bound=BaseModel)


@dataclass(frozen=True)
class Validation(Generic[M]):
    """Outcome of validating one value: ``value`` on success, ``error`` otherwise."""

    value: Optional[M] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def _validate(model: Type[M], value: Any) -> Validation[M]:
    try:
        return Validation(value=model.model_validate(value))
    except ValidationError as exc:
        return Validation(error=f"{model.__name__}: {exc.error_count()} error(s): {exc.errors()[0]['msg']}")


def validate_position(value: Any) -> Validation[Position]:
    return _validate(Position, value)


def validate_range(value: Any) -> Validation[Range]:
    return _validate(Range, value)


def validate_diagnostic(value: Any) -> Validation[Diagnostic]:
    return _validate(Diagnostic, value)


def validate_batch(value: Any) -> Validation[DiagnosticBatch]:
    """Validate a decoded ``{"diagnostics": [...]}`` payload."""
    if not isinstance(value, dict):
        return Validation(error=f"DiagnosticBatch: expected an object, got {type(value).__name__}")
    diagnostics = value.get("diagnostics")
    if not isinstance(diagnostics, list):
        return Validation(error="DiagnosticBatch: 'diagnostics' must be an array")

    checked = []
    for index, item in enumerate(diagnostics):
        result = validate_diagnostic(item)
        if not result.ok:
            return Validation(error=f"diagnostics[{index}]: {result.error}")
        checked.append(result.value)
    return Validation(value=DiagnosticBatch(diagnostics=checked))


def to_batch(value: Any) -> DiagnosticBatch:
    """Fail-open conversion of decoded JSON into a DiagnosticBatch."""
    result = validate_batch(value)
    if not result.ok:
        logger.warning(
            f"[lspParser] Parsed JSON does not match expected diagnostic structure ({result.error})"
        )
        return DiagnosticBatch(diagnostics=[])
    return result.value


def parse_lsp_response(text: str) -> DiagnosticBatch:
    """
    Parse LSP diagnostic JSON text.

    Args:
        text: Raw response body (or linter stdout).

    Returns:
        The validated batch, or an empty batch for empty/invalid input.
    """
    trimmed = text.strip() if isinstance(text, str) else ""
    if not trimmed:
        return DiagnosticBatch(diagnostics=[])

    try:
        parsed = json.loads(trimmed)
    except (ValueError, RecursionError) as exc:
        # JSONDecodeError, oversized integer literals, pathological nesting
        logger.warning(f"[lspParser] Failed to parse input as JSON: {type(exc).__name__}: {exc}")
        return DiagnosticBatch(diagnostics=[])

    return to_batch(parsed)
