import json

import pytest

from .core_types import ErrorKind, MalformedResponseError, RawSymbol
from .parser import (
    DIAGNOSTICS_REPAIR_OFFSET,
    ResponseParser,
    repair_diagnostics_response,
)


def _range(line, character, end_line, end_character):
    return {
        "start": {"line": line, "character": character},
        "end": {"line": end_line, "character": end_character},
    }


DIAGNOSTICS = {
    "uri": "uri",
    "diagnostics": [
        {
            "range": _range(2, 5, 2, 9),
            "severity": 1,
            "source": "lfortran",
            "message": "Variable 'x' is not declared",
        }
    ],
}


# --- Fixtures ---


@pytest.fixture
def parser():
    """Fixture for a ResponseParser with the repair shim enabled."""
    return ResponseParser()


@pytest.fixture
def diagnostics_json():
    return json.dumps(DIAGNOSTICS, separators=(",", ":"))


@pytest.fixture
def broken_diagnostics_json(diagnostics_json):
    """Diagnostics output with the brace lfortran#5525 drops removed."""
    assert diagnostics_json[DIAGNOSTICS_REPAIR_OFFSET] == "{"
    return (
        diagnostics_json[:DIAGNOSTICS_REPAIR_OFFSET]
        + diagnostics_json[DIAGNOSTICS_REPAIR_OFFSET + 1:]
    )


# --- Tests for array responses ---


def test_parse_symbols(parser):
    """Test a symbol array is decoded with camelCase keys and extra keys ignored."""
    response = json.dumps(
        [
            {
                "name": "compute",
                "kind": 12,
                "filename": "main.f90",
                "containerName": "solver",
                "unknown": True,
                "location": {"uri": "uri", "range": _range(4, 1, 9, 20)},
            }
        ]
    )

    symbols = parser.parse_symbols(response)

    assert len(symbols) == 1
    assert isinstance(symbols[0], RawSymbol)
    assert symbols[0].name == "compute"
    assert symbols[0].container_name == "solver"
    assert symbols[0].location.range.end.character == 20


def test_parse_definitions_empty_array(parser):
    """Test an empty array yields no records."""
    assert parser.parse_definitions("[]") == []


def test_parse_edits_allows_missing_location(parser):
    """Test rename records without a location still decode."""
    edits = parser.parse_edits(json.dumps([{"filename": "a.f90"}]))

    assert edits[0].location is None


@pytest.mark.parametrize("response", ["", "not json", "{\"a\": 1}", "null"])
def test_parse_symbols_malformed(parser, response):
    """Test invalid JSON and non-array responses raise MalformedResponseError."""
    with pytest.raises(MalformedResponseError) as excinfo:
        parser.parse_symbols(response)

    assert excinfo.value.error_code == ErrorKind.MALFORMED_OUTPUT
    assert excinfo.value.response == response


def test_parse_symbols_skips_invalid_records(parser):
    """Test one record of the wrong shape does not discard the rest of the batch."""
    location = {"uri": "uri", "range": _range(1, 1, 1, 5)}
    response = json.dumps(
        [
            {"name": "first", "kind": 12, "location": location},
            {"kind": 12, "location": location},
            {"name": 1, "kind": 12, "location": location},
            {"name": "last", "kind": 13, "location": location},
        ]
    )

    symbols = parser.parse_symbols(response)

    assert [s.name for s in symbols] == ["first", "last"]


# --- Tests for diagnostics and the repair shim ---


def test_parse_diagnostics_well_formed(parser, diagnostics_json, mocker):
    """Test a well-formed payload never reaches the repair path."""
    repair = mocker.patch(
        "lfortran_lsp.parser.repair_diagnostics_response",
        side_effect=AssertionError("repair must not run"),
    )

    results = parser.parse_diagnostics(diagnostics_json)

    repair.assert_not_called()
    assert len(results.diagnostics) == 1
    assert results.diagnostics[0].message == "Variable 'x' is not declared"


def test_parse_diagnostics_repair_matches_direct_parse(
    parser, diagnostics_json, broken_diagnostics_json
):
    """Test the repaired payload decodes to the same records as the intact one."""
    direct = parser.parse_diagnostics(diagnostics_json)
    repaired = parser.parse_diagnostics(broken_diagnostics_json)

    assert repaired == direct


def test_parse_diagnostics_repair_disabled(broken_diagnostics_json):
    """Test the shim can be switched off."""
    parser = ResponseParser(repair_diagnostics=False)

    with pytest.raises(MalformedResponseError):
        parser.parse_diagnostics(broken_diagnostics_json)


def test_parse_diagnostics_unrepairable(parser):
    """Test output the shim cannot fix is reported as malformed."""
    with pytest.raises(MalformedResponseError):
        parser.parse_diagnostics("Segmentation fault")


def test_parse_diagnostics_missing_key_defaults_to_empty(parser):
    """Test an object without diagnostics yields none."""
    assert parser.parse_diagnostics("{}").diagnostics == []


def test_repair_inserts_single_brace():
    """Test the repair inserts exactly one brace at the fixed offset."""
    text = "x" * 40
    repaired = repair_diagnostics_response(text)

    assert len(repaired) == len(text) + 1
    assert repaired[DIAGNOSTICS_REPAIR_OFFSET] == "{"
    assert repaired.replace("{", "", 1) == text


def test_parse_diagnostics_skips_invalid_records(parser):
    """Test a diagnostic without a message is dropped and the others kept."""
    payload = {
        "diagnostics": [
            {"range": _range(1, 1, 1, 4), "message": "first"},
            {"range": _range(2, 1, 2, 4)},
            {"range": _range(3, 1, 3, 4), "message": "third"},
        ]
    }

    results = parser.parse_diagnostics(json.dumps(payload))

    assert [d.message for d in results.diagnostics] == ["first", "third"]


@pytest.mark.parametrize("response", ["[]", "{\"diagnostics\": 3}"])
def test_parse_diagnostics_wrong_shape(parser, response):
    with pytest.raises(MalformedResponseError):
        parser.parse_diagnostics(response)
