"""
shiftreset.run API types.

PURE DATA MODELS
Wire shapes (Position, Range, Diagnostic, DiagnosticBatch) are Pydantic models
so the response validator can check them; request options and results are
plain dataclasses built per call.
"""

from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Any, Dict, Generic, List, Literal, Optional, TypeVar, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    SerializerFunctionWrapHandler,
    StrictInt,
    StrictStr,
    field_validator,
    model_serializer,
)

from api.cancellation import CancellationToken


T = TypeVar("T")


# ──────────────────────────────────────────────────────────────
# LSP DIAGNOSTIC SCHEMAS
# ──────────────────────────────────────────────────────────────


class Severity(IntEnum):
    """LSP severity: 1=Error, 2=Warning, 3=Information, 4=Hint."""

    ERROR = 1
    WARNING = 2
    INFORMATION = 3
    HINT = 4


class Position(BaseModel):
    """Position in a text document (0-indexed)."""

    model_config = ConfigDict(frozen=True)

    line: StrictInt
    character: StrictInt


class Range(BaseModel):
    """Range in a text document. ``end`` is exclusive."""

    model_config = ConfigDict(frozen=True)

    start: Position
    end: Position


class Diagnostic(BaseModel):
    """
    Diagnostic from the linter API.

    Matches the LSP Diagnostic interface. Unknown fields sent by the server
    (codeDescription, data, ...) are ignored.
    """

    model_config = ConfigDict(frozen=True)

    range: Range
    severity: Severity
    message: StrictStr
    code: Optional[Union[StrictStr, StrictInt]] = None
    source: Optional[StrictStr] = None

    @field_validator("severity", mode="before")
    @classmethod
    def _severity_is_integer(cls, value: Any) -> Any:
        # 2.0 and True both compare equal to an int; neither is a severity
        if isinstance(value, Severity) or type(value) is int:
            return value
        raise ValueError(f"severity must be an integer, got {type(value).__name__}")

    @field_validator("code", "source", mode="before")
    @classmethod
    def _present_means_not_null(cls, value: Any) -> Any:
        if value is None:
            raise ValueError("optional field is present but null")
        return value

    @model_serializer(mode="wrap")
    def _omit_absent_optionals(self, handler: SerializerFunctionWrapHandler) -> Dict[str, Any]:
        # absent optionals are omitted, never written as null
        data = handler(self)
        for name in ("code", "source"):
            if name in data and data[name] is None:
                del data[name]
        return data


class DiagnosticBatch(BaseModel):
    """Diagnostics for one document, in server order."""

    model_config = ConfigDict(frozen=True)

    diagnostics: List[Diagnostic] = Field(...)


class FormatResult(BaseModel):
    """Response from the format endpoint."""

    model_config = ConfigDict(frozen=True)

    content: str


# ──────────────────────────────────────────────────────────────
# ERRORS
# ──────────────────────────────────────────────────────────────


class ErrorKind(str, Enum):
    """Client-side error codes."""

    NETWORK_ERROR = "NETWORK_ERROR"
    RATE_LIMITED = "RATE_LIMITED"
    SERVER_ERROR = "SERVER_ERROR"
    CLIENT_ERROR = "CLIENT_ERROR"
    INVALID_RESPONSE = "INVALID_RESPONSE"
    ABORTED = "ABORTED"


_RETRIABLE_KINDS = frozenset({
    ErrorKind.NETWORK_ERROR,
    ErrorKind.RATE_LIMITED,
    ErrorKind.SERVER_ERROR,
})


class ShiftresetApiError(Exception):
    """
    Structured error from the API client.

    Returned inside a Failure result, never raised by the client.
    ``is_retriable`` depends on ``kind`` alone.
    """

    def __init__(
        self,
        kind: ErrorKind,
        message: str,
        status_code: Optional[int] = None,
        cause: Optional[BaseException] = None,
    ):
        self.kind = kind
        self.message = message
        self.status_code = status_code
        self.cause = cause
        super().__init__(message)
        if cause is not None:
            self.__cause__ = cause

    @property
    def is_retriable(self) -> bool:
        """True for NETWORK_ERROR, RATE_LIMITED and SERVER_ERROR."""
        return self.kind in _RETRIABLE_KINDS

    def __repr__(self) -> str:
        return (
            f"ShiftresetApiError(kind={self.kind.value}, message={self.message!r}, "
            f"status_code={self.status_code})"
        )


# ──────────────────────────────────────────────────────────────
# RESULTS
# ──────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class Success(Generic[T]):
    data: T
    success: Literal[True] = True


@dataclass(frozen=True)
class Failure:
    error: ShiftresetApiError
    success: Literal[False] = False


ApiResult = Union[Success[T], Failure]


# ──────────────────────────────────────────────────────────────
# REQUEST OPTIONS
# ──────────────────────────────────────────────────────────────


def _flag(value: bool) -> str:
    return "true" if value else "false"


@dataclass(frozen=True)
class CheckOptions:
    """Options for /check."""

    lsp: bool = True
    fix: bool = False
    fix_unsafe: bool = False
    timeout_ms: Optional[int] = None      # overrides the client default
    signal: Optional[CancellationToken] = None

    def to_query_params(self) -> Dict[str, str]:
        return {
            "lsp": _flag(self.lsp),
            "fix": _flag(self.fix),
            "fix_unsafe": _flag(self.fix_unsafe),
        }


@dataclass(frozen=True)
class FormatOptions:
    """Options for /format (no query parameters)."""

    timeout_ms: Optional[int] = None
    signal: Optional[CancellationToken] = None

    def to_query_params(self) -> Dict[str, str]:
        return {}


@dataclass(frozen=True)
class ComplianceOptions:
    """Options for /compliance. Empty lists and missing strings are omitted."""

    lsp: bool = True
    select: Optional[List[str]] = None
    ignore: Optional[List[str]] = None
    severity: Optional[str] = None
    standard: Optional[str] = None
    timeout_ms: Optional[int] = None
    signal: Optional[CancellationToken] = None

    def to_query_params(self) -> Dict[str, str]:
        params = {"lsp": _flag(self.lsp)}
        if self.select:
            params["select"] = ",".join(self.select)
        if self.ignore:
            params["ignore"] = ",".join(self.ignore)
        if self.severity:
            params["severity"] = self.severity
        if self.standard:
            params["standard"] = self.standard
        return params


@dataclass(frozen=True)
class RequestDescriptor:
    """One outbound call. Built per request and never reused."""

    endpoint: str
    body: str
    query_params: Dict[str, str] = field(default_factory=dict)
    timeout_ms: int = 30000
    signal: Optional[CancellationToken] = None
