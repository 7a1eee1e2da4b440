"""Command envelope decoding tests.

Learn: parse_command is the only place payload problems are detected,
so these tests pin the exact error message each failure produces.
"""

import json

import pytest

from todobridge.bridge.commands import (
    INVALID_FORMAT,
    CommandError,
    CommandName,
    CommandResponse,
    CreateRequest,
    GetAllRequest,
    UpdateRequest,
    extract_correlation_id,
    parse_command,
)


def _error(name: CommandName, payload) -> str:
    raw = payload if isinstance(payload, str) else json.dumps(payload)
    with pytest.raises(CommandError) as exc:
        parse_command(name, raw)
    return exc.value.message


# ─── correlation id ──────────────────────────────────────


def test_correlation_id_extracted():
    assert extract_correlation_id('{"correlationId": "c1"}') == "c1"


def test_correlation_id_key_is_case_insensitive():
    assert extract_correlation_id('{"CorrelationID": "abc"}') == "abc"


@pytest.mark.parametrize(
    "payload",
    ["not json", "", "[1, 2]", '{"correlationId": 42}', '{"correlationId": ""}', "{}"],
)
def test_unusable_correlation_id_is_absent(payload):
    assert extract_correlation_id(payload) is None


# ─── decoding ────────────────────────────────────────────


def test_getall_ignores_payload():
    assert isinstance(parse_command(CommandName.GET_ALL, "garbage"), GetAllRequest)


def test_create_with_all_fields():
    request = parse_command(
        CommandName.CREATE,
        json.dumps({"Title": "A", "description": "d", "IsCompleted": True, "correlationId": "x"}),
    )
    assert isinstance(request, CreateRequest)
    assert request.title == "A"
    assert request.description == "d"
    assert request.is_completed is True


@pytest.mark.parametrize("payload", [{}, {"title": ""}, {"title": "   "}, {"title": None}])
def test_create_requires_title(payload):
    assert _error(CommandName.CREATE, payload) == "Invalid request: title is required"


def test_create_title_too_long():
    message = _error(CommandName.CREATE, {"title": "x" * 201})
    assert message == "Invalid request: title must be at most 200 characters"


@pytest.mark.parametrize("name", [CommandName.GET, CommandName.UPDATE, CommandName.DELETE])
@pytest.mark.parametrize("payload", [{}, {"id": None}, {"id": "7"}, {"id": 1.5}])
def test_id_required(name, payload):
    assert _error(name, payload) == "Invalid request: id is required"


@pytest.mark.parametrize(
    "name",
    [CommandName.GET, CommandName.UPDATE, CommandName.UPDATE_PARTIAL, CommandName.DELETE],
)
@pytest.mark.parametrize("item_id", [2**31, 2**63, -(2**31) - 1])
def test_id_outside_column_range(name, item_id):
    assert _error(name, {"id": item_id}) == INVALID_FORMAT


def test_id_at_column_bounds_is_accepted():
    assert parse_command(CommandName.GET, json.dumps({"id": 2**31 - 1})).id == 2**31 - 1
    assert parse_command(CommandName.DELETE, json.dumps({"id": -(2**31)})).id == -(2**31)


@pytest.mark.parametrize("payload", ["{not json", "[]", '"text"', ""])
def test_malformed_json(payload):
    assert _error(CommandName.DELETE, payload) == INVALID_FORMAT


def test_wrong_type_for_optional_field():
    assert _error(CommandName.UPDATE, {"id": 1, "isCompleted": "yes"}) == INVALID_FORMAT


def test_update_partial_fields():
    request = parse_command(CommandName.UPDATE_PARTIAL, json.dumps({"id": 3, "isCompleted": False}))
    assert isinstance(request, UpdateRequest)
    assert request.id == 3
    assert request.title is None
    assert request.is_completed is False


def test_response_envelope_omits_empty_fields():
    wire = json.loads(CommandResponse.failure("Item not found").to_wire())
    assert wire["success"] is False
    assert wire["error"] == "Item not found"
    assert "data" not in wire
    assert "timestamp" in wire
