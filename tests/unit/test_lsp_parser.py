"""
tests/unit/test_lsp_parser.py

Verifies:
✔ Empty / whitespace-only input → empty batch
✔ Invalid JSON (including pathological nesting and huge integers) → empty batch + warning
✔ Wrong top-level shape → empty batch
✔ Severity must be an integer in 1..4 (bools and floats rejected)
✔ code accepts string or integer; present-but-null fields rejected
✔ Unknown fields ignored
✔ One malformed diagnostic drops the whole batch
✔ Server order preserved; model_dump_json() output parses back equal
"""

import json
import logging

import pytest

from api.types import Diagnostic, DiagnosticBatch, Severity
from lsp.parser import (
    parse_lsp_response,
    to_batch,
    validate_batch,
    validate_diagnostic,
    validate_position,
    validate_range,
)


def make_diagnostic(**overrides):
    data = {
        "range": {
            "start": {"line": 2, "character": 0},
            "end": {"line": 2, "character": 8},
        },
        "severity": 1,
        "message": "Unknown instruction",
    }
    data.update(overrides)
    return data


def as_text(*diagnostics):
    return json.dumps({"diagnostics": list(diagnostics)})


# ─────────────────────────────────────────────────────
# Raw text handling
# ─────────────────────────────────────────────────────


class TestParseLspResponse:
    @pytest.mark.parametrize("text", ["", "   ", "\n\t\n"])
    def test_empty_input(self, text):
        assert parse_lsp_response(text) == DiagnosticBatch(diagnostics=[])

    def test_invalid_json_warns(self, caplog):
        with caplog.at_level(logging.WARNING, logger="lsp.parser"):
            batch = parse_lsp_response("{not json")

        assert batch.diagnostics == []
        assert any("[lspParser]" in record.message for record in caplog.records)

    @pytest.mark.parametrize("text", [
        "[" * 100000,      # nesting deeper than the recursion limit
        "1" * 5000,        # integer literal over the int conversion limit
    ])
    def test_hostile_json_never_raises(self, text, caplog):
        with caplog.at_level(logging.WARNING, logger="lsp.parser"):
            batch = parse_lsp_response(text)

        assert batch == DiagnosticBatch(diagnostics=[])
        assert any("[lspParser]" in record.message for record in caplog.records)

    @pytest.mark.parametrize("text", ["[]", "42", '"diagnostics"', "null"])
    def test_non_object_payload(self, text):
        assert parse_lsp_response(text).diagnostics == []

    @pytest.mark.parametrize("payload", [
        {},
        {"diagnostics": None},
        {"diagnostics": {}},
        {"diagnostics": "none"},
    ])
    def test_diagnostics_not_a_list(self, payload):
        assert parse_lsp_response(json.dumps(payload)).diagnostics == []

    def test_valid_payload(self):
        batch = parse_lsp_response(as_text(make_diagnostic(code="E100", source="fanuc-tp")))

        assert len(batch.diagnostics) == 1
        diagnostic = batch.diagnostics[0]
        assert diagnostic.severity is Severity.ERROR
        assert diagnostic.range.start.line == 2
        assert diagnostic.range.end.character == 8
        assert diagnostic.code == "E100"
        assert diagnostic.source == "fanuc-tp"

    def test_surrounding_whitespace_ignored(self):
        text = "\n  " + as_text(make_diagnostic()) + "  \n"
        assert len(parse_lsp_response(text).diagnostics) == 1

    def test_order_preserved(self):
        text = as_text(
            make_diagnostic(message="c"),
            make_diagnostic(message="a"),
            make_diagnostic(message="b"),
        )
        assert [d.message for d in parse_lsp_response(text).diagnostics] == ["c", "a", "b"]

    def test_serialized_batch_parses_back_equal(self):
        original = parse_lsp_response(as_text(
            make_diagnostic(severity=3, code=12),
            make_diagnostic(severity=4, message="hint", source="fanuc-tp"),
        ))
        again = parse_lsp_response(original.model_dump_json())
        assert again == original
        assert len(again.diagnostics) == 2

    def test_absent_optionals_not_serialized_as_null(self):
        batch = parse_lsp_response(as_text(make_diagnostic()))
        encoded = json.loads(batch.model_dump_json())

        assert "code" not in encoded["diagnostics"][0]
        assert "source" not in encoded["diagnostics"][0]
        assert batch.model_dump()["diagnostics"][0]["severity"] == 1


# ─────────────────────────────────────────────────────
# Field rules
# ─────────────────────────────────────────────────────


class TestDiagnosticRules:
    @pytest.mark.parametrize("severity", [1, 2, 3, 4])
    def test_valid_severities(self, severity):
        assert validate_diagnostic(make_diagnostic(severity=severity)).ok

    @pytest.mark.parametrize("severity", [0, 5, -1, 2.0, True, "1", None])
    def test_invalid_severities(self, severity):
        result = validate_diagnostic(make_diagnostic(severity=severity))
        assert not result.ok
        assert result.value is None

    @pytest.mark.parametrize("code", ["E001", 42])
    def test_code_string_or_integer(self, code):
        result = validate_diagnostic(make_diagnostic(code=code))
        assert result.ok
        assert result.value.code == code

    @pytest.mark.parametrize("code", [None, ["E001"], 1.5, {"value": 1}])
    def test_invalid_code(self, code):
        assert not validate_diagnostic(make_diagnostic(code=code)).ok

    @pytest.mark.parametrize("source", [None, 3, ["fanuc-tp"]])
    def test_invalid_source(self, source):
        assert not validate_diagnostic(make_diagnostic(source=source)).ok

    def test_message_must_be_string(self):
        assert not validate_diagnostic(make_diagnostic(message=5)).ok
        assert not validate_diagnostic({k: v for k, v in make_diagnostic().items() if k != "message"}).ok

    def test_unknown_fields_ignored(self):
        result = validate_diagnostic(make_diagnostic(codeDescription={"href": "x"}, data=[1]))
        assert result.ok
        assert isinstance(result.value, Diagnostic)

    def test_optional_fields_may_be_absent(self):
        result = validate_diagnostic(make_diagnostic())
        assert result.value.code is None
        assert result.value.source is None


class TestPositionAndRange:
    def test_position_requires_integers(self):
        assert validate_position({"line": 0, "character": 3}).ok
        assert not validate_position({"line": "0", "character": 3}).ok
        assert not validate_position({"line": 1.0, "character": 3}).ok
        assert not validate_position({"line": 1}).ok

    def test_negative_positions_accepted(self):
        # clamped when converted for the editor
        assert validate_position({"line": -1, "character": -5}).ok

    def test_range_requires_both_ends(self):
        start = {"line": 0, "character": 0}
        assert validate_range({"start": start, "end": start}).ok
        assert not validate_range({"start": start}).ok
        assert not validate_range({"start": start, "end": [0, 0]}).ok


# ─────────────────────────────────────────────────────
# Batch
# ─────────────────────────────────────────────────────


class TestBatch:
    def test_one_bad_item_drops_batch(self):
        payload = {"diagnostics": [make_diagnostic(), make_diagnostic(severity=7), make_diagnostic()]}

        result = validate_batch(payload)
        assert not result.ok
        assert "diagnostics[1]" in result.error

        assert to_batch(payload).diagnostics == []

    def test_to_batch_warns_on_mismatch(self, caplog):
        with caplog.at_level(logging.WARNING, logger="lsp.parser"):
            to_batch({"diagnostics": [make_diagnostic(range=None)]})

        assert any("does not match" in record.message for record in caplog.records)

    def test_extra_top_level_fields_ignored(self):
        batch = to_batch({"diagnostics": [make_diagnostic()], "version": "1.2.0"})
        assert len(batch.diagnostics) == 1

    def test_empty_list(self):
        assert to_batch({"diagnostics": []}) == DiagnosticBatch(diagnostics=[])
