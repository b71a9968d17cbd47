"""
shiftreset.run API client layer.

- Async-first, never raises: every call returns Success or Failure
- Cooperative cancellation via CancellationToken (caller token + timeout)
- Diagnostic payloads schema-validated via Pydantic (see lsp.parser)

The client itself lives in ``api.client`` (it depends on ``lsp.parser``,
which depends on the types exported here).
"""

from api.cancellation import CancellationToken
from api.types import (
    ApiResult,
    CheckOptions,
    ComplianceOptions,
    Diagnostic,
    DiagnosticBatch,
    ErrorKind,
    Failure,
    FormatOptions,
    FormatResult,
    Position,
    Range,
    RequestDescriptor,
    Severity,
    ShiftresetApiError,
    Success,
)

__all__ = [
    "ApiResult",
    "CancellationToken",
    "CheckOptions",
    "ComplianceOptions",
    "Diagnostic",
    "DiagnosticBatch",
    "ErrorKind",
    "Failure",
    "FormatOptions",
    "FormatResult",
    "Position",
    "Range",
    "RequestDescriptor",
    "Severity",
    "ShiftresetApiError",
    "Success",
]
