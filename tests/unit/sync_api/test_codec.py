"""Tests for tasksync/sync_api/codec.py."""

from __future__ import annotations

import json

import pytest

from tasksync.commands import AddItemArgs, UpdateItemArgs, new_command
from tasksync.errors import TaskSyncDecodeError, TaskSyncValidationError
from tasksync.sync_api.codec import decode_response, encode_request, parse_json_body

# ---------------------------------------------------------------------------
# encode_request
# ---------------------------------------------------------------------------


class TestEncodeRequest:
    def test_full_sync_form(self):
        form = encode_request("*", ["all"])
        assert form == {"sync_token": "*", "resource_types": '["all"]'}

    def test_resource_types_embedded_as_json(self):
        form = encode_request("abc", ["items", "projects", "labels"])
        assert json.loads(form["resource_types"]) == ["items", "projects", "labels"]

    def test_commands_embedded_as_json(self):
        cmd = new_command(AddItemArgs(content="test item"), uuid="u", temp_id="tmp")
        form = encode_request("abc", ["items"], [cmd])
        assert json.loads(form["commands"]) == [
            {"type": "item_add", "uuid": "u", "temp_id": "tmp", "args": {"content": "test item"}},
        ]

    def test_commands_omitted_when_empty(self):
        assert "commands" not in encode_request("abc", ["items"], [])

    def test_multiple_commands_keep_order(self):
        a = new_command(AddItemArgs(content="a"), uuid="1")
        b = new_command(UpdateItemArgs(id="9", content="b"), uuid="2")
        form = encode_request("abc", ["items"], [a, b])
        assert [c["uuid"] for c in json.loads(form["commands"])] == ["1", "2"]

    def test_empty_token_rejected(self):
        with pytest.raises(TaskSyncValidationError) as exc_info:
            encode_request("", ["items"])
        assert exc_info.value.context["field"] == "sync_token"

    def test_empty_resource_types_rejected(self):
        with pytest.raises(TaskSyncValidationError) as exc_info:
            encode_request("*", [])
        assert exc_info.value.context["field"] == "resource_types"


# ---------------------------------------------------------------------------
# parse_json_body
# ---------------------------------------------------------------------------


class TestParseJsonBody:
    def test_object(self):
        assert parse_json_body('{"sync_token": "a"}') == {"sync_token": "a"}

    def test_invalid_json(self):
        with pytest.raises(TaskSyncDecodeError) as exc_info:
            parse_json_body("<html>oops</html>")
        assert exc_info.value.cause is not None

    def test_non_object(self):
        with pytest.raises(TaskSyncDecodeError, match="not a JSON object"):
            parse_json_body("[1, 2]")


# ---------------------------------------------------------------------------
# decode_response
# ---------------------------------------------------------------------------


class TestDecodeResponse:
    def test_add_task_response(self):
        snap = decode_response({
            "items": [{"id": "1", "content": "test item"}],
            "temp_id_mapping": {"tmp": "1"},
            "sync_status": {"u": "ok"},
        })
        assert snap.items["1"].content == "test item"
        assert snap.temp_id_mapping == {"tmp": "1"}
        assert snap.outcome_for("u").ok
        assert snap.sync_token == ""

    def test_failed_command_outcome(self):
        snap = decode_response({
            "sync_token": "abc",
            "sync_status": {"u": {"error_code": 15, "error": "Invalid temporary id"}},
        })
        outcome = snap.outcome_for("u")
        assert not outcome.ok
        assert outcome.error_code == 15
        assert outcome.error == "Invalid temporary id"

    def test_all_collections(self):
        snap = decode_response({
            "sync_token": "abc",
            "full_sync": True,
            "items": [{"id": "1"}],
            "projects": [{"id": "p1", "name": "Inbox"}],
            "labels": [{"id": "l1", "name": "Home"}],
            "sections": [{"id": "s1", "name": "Later"}],
        })
        assert snap.full_sync
        assert set(snap.projects) == {"p1"}
        assert snap.labels["l1"].name == "Home"
        assert snap.sections["s1"].name == "Later"

    def test_missing_collections_are_empty(self):
        snap = decode_response({"sync_token": "abc"})
        assert snap.items == {}
        assert snap.projects == {}
        assert snap.command_outcomes == {}

    def test_null_error_message_decodes_empty(self):
        snap = decode_response({"sync_status": {"u": {"error_code": 15, "error": None}}})
        outcome = snap.command_outcomes["u"]
        assert not outcome.ok
        assert outcome.error == ""
        assert outcome.error_code == 15

    def test_null_mapping_and_status(self):
        snap = decode_response({"sync_token": "abc", "temp_id_mapping": None, "sync_status": None})
        assert snap.temp_id_mapping == {}

    @pytest.mark.parametrize(
        ("body", "field"),
        [
            ({"sync_token": 42}, "sync_token"),
            ({"items": {"id": "1"}}, "items"),
            ({"items": [{"content": "no id"}]}, "items"),
            ({"items": [{"id": 1}]}, "items"),
            ({"projects": ["p1"]}, "projects"),
            ({"temp_id_mapping": {"tmp": 1}}, "temp_id_mapping"),
            ({"temp_id_mapping": ["tmp"]}, "temp_id_mapping"),
            ({"sync_status": ["ok"]}, "sync_status"),
            ({"sync_status": {"u": "done"}}, "sync_status"),
        ],
    )
    def test_shape_mismatch(self, body, field):
        with pytest.raises(TaskSyncDecodeError) as exc_info:
            decode_response(body)
        assert exc_info.value.context["field"] == field

    def test_malformed_entity_field(self):
        with pytest.raises(TaskSyncDecodeError, match="Malformed entry"):
            decode_response({"items": [{"id": "1", "priority": "high"}]})
