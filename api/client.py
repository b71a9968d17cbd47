"""
HTTP client for the shiftreset.run API.

Endpoints:

  Operation    Path          Success encoding
  ───────────  ────────────  ─────────────────────────────────
  check        POST /check       application/json {diagnostics}
  format       POST /format      text/plain (formatted program)
  compliance   POST /compliance  application/json {diagnostics}

Invariants:
- Never raises: every call ends in Success(data) or Failure(error)
- One internal timeout token per call, merged with the caller's token;
  whichever fires first aborts the request and yields ABORTED
- The timeout timer is released on every exit path
- Status → error kind: 429 RATE_LIMITED, 5xx SERVER_ERROR, other 4xx CLIENT_ERROR,
  anything else non-2xx INVALID_RESPONSE
- JSON payloads are schema-checked by the public operation, not the transport

Usage:
    client = ShiftresetClient()
    result = await client.check(content)
    if result.success:
        print(result.data.diagnostics)
    else:
        print(result.error.kind, result.error.is_retriable)
"""

import asyncio
import logging
from typing import Any, Optional
from urllib.parse import quote, urlencode

import httpx

from api.cancellation import CancellationToken
from api.types import (
    ApiResult,
    CheckOptions,
    ComplianceOptions,
    DiagnosticBatch,
    ErrorKind,
    Failure,
    FormatOptions,
    FormatResult,
    RequestDescriptor,
    ShiftresetApiError,
    Success,
)
from lsp.parser import to_batch

logger = logging.getLogger(__name__)


API_BASE_URL = "https://shiftreset.run"
DEFAULT_TIMEOUT_MS = 30000

NETWORK_ERROR_MESSAGE = (
    "Network error: Unable to reach the API server. Check your internet connection."
)


class ShiftresetClient:
    """
    Async client for the shiftreset.run API.

    No authentication. Every request posts the raw program text with
    ``Content-Type: text/plain; charset=utf-8``.

    Args:
        timeout_ms: Default per-request timeout (30000 if omitted).
        base_url:   Override the API host (tests, self-hosted instances).
        transport:  Optional httpx transport, e.g. ``httpx.MockTransport`` in tests.
    """

    def __init__(
        self,
        timeout_ms: Optional[int] = None,
        base_url: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = (base_url or API_BASE_URL).rstrip("/")
        self.default_timeout_ms = timeout_ms if timeout_ms is not None else DEFAULT_TIMEOUT_MS
        self._transport = transport

    # ──────────────────────────────────────────────────────────
    # PUBLIC OPERATIONS
    # ──────────────────────────────────────────────────────────

    async def check(
        self,
        content: str,
        options: Optional[CheckOptions] = None,
    ) -> ApiResult[DiagnosticBatch]:
        """
        Check file content for syntax errors, with optional auto-fix.

        Args:
            content: The program text.
            options: lsp / fix / fix_unsafe flags, timeout and cancellation.

        Returns:
            Success with a DiagnosticBatch, or Failure.
        """
        options = options or CheckOptions()
        result = await self._make_request(self._describe("/check", content, options))
        return self._as_batch(result)

    async def lint(
        self,
        content: str,
        options: Optional[CheckOptions] = None,
    ) -> ApiResult[DiagnosticBatch]:
        """``check`` with LSP-formatted diagnostics forced on."""
        options = options or CheckOptions()
        return await self.check(
            content,
            CheckOptions(
                lsp=True,
                fix=options.fix,
                fix_unsafe=options.fix_unsafe,
                timeout_ms=options.timeout_ms,
                signal=options.signal,
            ),
        )

    async def format(
        self,
        content: str,
        options: Optional[FormatOptions] = None,
    ) -> ApiResult[FormatResult]:
        """
        Format file content.

        Returns:
            Success with FormatResult(content=<formatted text, verbatim>), or Failure.
        """
        options = options or FormatOptions()
        result = await self._make_request(self._describe("/format", content, options))
        if not result.success:
            return result
        data = result.data
        if isinstance(data, FormatResult):
            return result
        return Failure(error=ShiftresetApiError(
            ErrorKind.INVALID_RESPONSE,
            "Expected formatted text but the API returned structured data",
        ))

    async def compliance(
        self,
        content: str,
        options: Optional[ComplianceOptions] = None,
    ) -> ApiResult[DiagnosticBatch]:
        """
        Check file content for compliance violations.

        Args:
            content: The program text.
            options: lsp / select / ignore / severity / standard, timeout and
                     cancellation.
        """
        options = options or ComplianceOptions()
        result = await self._make_request(self._describe("/compliance", content, options))
        return self._as_batch(result)

    # ──────────────────────────────────────────────────────────
    # REQUEST PIPELINE
    # ──────────────────────────────────────────────────────────

    def _describe(self, endpoint: str, content: str, options: Any) -> RequestDescriptor:
        timeout_ms = options.timeout_ms if options.timeout_ms is not None else self.default_timeout_ms
        return RequestDescriptor(
            endpoint=endpoint,
            body=content,
            query_params=options.to_query_params(),
            timeout_ms=timeout_ms,
            signal=options.signal,
        )

    def build_url(self, descriptor: RequestDescriptor) -> str:
        """Endpoint URL with percent-encoded query (``,`` becomes ``%2C``)."""
        url = f"{self.base_url}{descriptor.endpoint}"
        if descriptor.query_params:
            url = f"{url}?{urlencode(descriptor.query_params, quote_via=quote)}"
        return url

    async def _make_request(self, descriptor: RequestDescriptor) -> ApiResult[Any]:
        """
        Execute one request and classify the outcome.

        Stages:
          1. transport  did we get a response at all (ABORTED / NETWORK_ERROR)
          2. status     was it acceptable (RATE_LIMITED / SERVER_ERROR / ...)
          3. body       could we decode it (INVALID_RESPONSE)
        """
        timeout = CancellationToken.after(descriptor.timeout_ms / 1000.0, reason="timeout")
        combined = CancellationToken.linked(descriptor.signal, timeout)
        try:
            try:
                response = await self._send(descriptor, combined)
            except asyncio.CancelledError:
                if not combined.cancelled:
                    # the caller's task is being cancelled; let it unwind
                    raise
                return Failure(error=self._aborted(combined))
            except httpx.TimeoutException as exc:
                return Failure(error=ShiftresetApiError(
                    ErrorKind.ABORTED, "Request timed out", cause=exc,
                ))
            except httpx.TransportError as exc:
                logger.debug(f"Transport failure for {descriptor.endpoint}: {exc!r}")
                return Failure(error=ShiftresetApiError(
                    ErrorKind.NETWORK_ERROR, NETWORK_ERROR_MESSAGE, cause=exc,
                ))

            return self._handle_response(response)

        except Exception as exc:
            logger.warning(
                f"Unexpected error calling {descriptor.endpoint}: {type(exc).__name__}: {exc}"
            )
            return Failure(error=ShiftresetApiError(
                ErrorKind.NETWORK_ERROR,
                str(exc) or "An unknown error occurred while making the request",
                cause=exc,
            ))
        finally:
            timeout.dispose()
            combined.dispose()

    async def _send(
        self,
        descriptor: RequestDescriptor,
        token: CancellationToken,
    ) -> httpx.Response:
        """POST the request, aborting it when ``token`` fires."""
        if token.cancelled:
            raise asyncio.CancelledError()

        async def post() -> httpx.Response:
            # timeout=None: the cancellation token owns the deadline
            async with httpx.AsyncClient(transport=self._transport, timeout=None) as client:
                return await client.post(
                    self.build_url(descriptor),
                    content=descriptor.body.encode("utf-8"),
                    headers={"Content-Type": "text/plain; charset=utf-8"},
                )

        request = asyncio.ensure_future(post())
        remove = token.add_callback(lambda _token: request.cancel())
        try:
            return await request
        finally:
            remove()

    def _handle_response(self, response: httpx.Response) -> ApiResult[Any]:
        """Classify status, then negotiate the body by Content-Type."""
        if not response.is_success:
            return Failure(error=self._http_error(response.status_code, response.reason_phrase))

        raw_content_type = response.headers.get("content-type", "")
        content_type = raw_content_type.lower()

        if "application/json" in content_type:
            try:
                return Success(data=response.json())
            except (ValueError, RecursionError) as exc:
                return Failure(error=ShiftresetApiError(
                    ErrorKind.INVALID_RESPONSE,
                    "Failed to parse API response as JSON",
                    status_code=response.status_code,
                    cause=exc,
                ))

        if "text/plain" in content_type:
            try:
                return Success(data=FormatResult(content=response.text))
            except (UnicodeDecodeError, LookupError) as exc:
                return Failure(error=ShiftresetApiError(
                    ErrorKind.INVALID_RESPONSE,
                    "Failed to read API response as text",
                    status_code=response.status_code,
                    cause=exc,
                ))

        return Failure(error=ShiftresetApiError(
            ErrorKind.INVALID_RESPONSE,
            f"Unexpected Content-Type: {raw_content_type}",
            status_code=response.status_code,
        ))

    # ──────────────────────────────────────────────────────────
    # HELPERS
    # ──────────────────────────────────────────────────────────

    @staticmethod
    def _http_error(status: int, status_text: str) -> ShiftresetApiError:
        """Map a non-2xx status to an error kind."""
        status_text = status_text or str(status)
        if status == 429:
            return ShiftresetApiError(
                ErrorKind.RATE_LIMITED,
                "Rate limit exceeded. Please try again later.",
                status_code=status,
            )
        if status >= 500:
            return ShiftresetApiError(
                ErrorKind.SERVER_ERROR, f"Server error: {status_text}", status_code=status,
            )
        if status >= 400:
            return ShiftresetApiError(
                ErrorKind.CLIENT_ERROR, f"Client error: {status_text}", status_code=status,
            )
        return ShiftresetApiError(
            ErrorKind.INVALID_RESPONSE,
            f"Unexpected HTTP status: {status} {status_text}",
            status_code=status,
        )

    @staticmethod
    def _aborted(token: CancellationToken) -> ShiftresetApiError:
        return ShiftresetApiError(
            ErrorKind.ABORTED,
            "Request was cancelled",
            cause=asyncio.CancelledError(token.reason),
        )

    @staticmethod
    def _as_batch(result: ApiResult[Any]) -> ApiResult[DiagnosticBatch]:
        """Schema-check a JSON payload; malformed payloads become an empty batch."""
        if not result.success:
            return result
        if isinstance(result.data, FormatResult):
            return Failure(error=ShiftresetApiError(
                ErrorKind.INVALID_RESPONSE,
                "Expected diagnostics but the API returned plain text",
            ))
        return Success(data=to_batch(result.data))


def classify_status(status: int) -> Optional[ShiftresetApiError]:
    """Error for a status code, or None when the status is 2xx."""
    if 200 <= status < 300:
        return None
    return ShiftresetClient._http_error(status, "")
