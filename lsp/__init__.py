"""
Editor-independent parsing and validation of LSP diagnostic payloads.
"""

from lsp.parser import (
    FANUC_TP_PROVIDER_ID,
    Validation,
    parse_lsp_response,
    to_batch,
    validate_batch,
    validate_diagnostic,
    validate_position,
    validate_range,
)

__all__ = [
    "FANUC_TP_PROVIDER_ID",
    "Validation",
    "parse_lsp_response",
    "to_batch",
    "validate_batch",
    "validate_diagnostic",
    "validate_position",
    "validate_range",
]
