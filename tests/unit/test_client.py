"""Tests for TaskSyncClient and AsyncTaskSyncClient.

The HTTP layer is stubbed by patching the transport's httpx client (or, for
call counting, ``transport.execute`` itself).
"""

from __future__ import annotations

import asyncio
import json
from datetime import datetime
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from tasksync.async_client import AsyncTaskSyncClient
from tasksync.client import TaskSyncClient
from tasksync.commands import (
    AddItemArgs,
    AddLabelArgs,
    AddProjectArgs,
    UpdateItemArgs,
    new_command,
)
from tasksync.config import TaskSyncConfig
from tasksync.errors import (
    TaskSyncCommandError,
    TaskSyncDecodeError,
    TaskSyncHTTPStatusError,
    TaskSyncTempIdUnresolvedError,
    TaskSyncTransportError,
    TaskSyncValidationError,
)
from tasksync.models import DueDateInput, Item, ItemFormValues, Snapshot, SyncState

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

SYNC_URL = "https://api.todoist.com/sync/v9/sync"

FULL_SYNC_BODY = {
    "sync_token": "t1",
    "full_sync": True,
    "items": [
        {"id": "1", "content": "Pay rent", "labels": ["Home"], "priority": 2},
        {"id": "2", "content": "Call mum"},
    ],
    "projects": [{"id": "p1", "name": "Inbox", "inbox_project": True}],
    "labels": [{"id": "l1", "name": "Home"}],
}


def make_response(status_code: int = 200, body: dict | None = None, text: str | None = None) -> httpx.Response:
    content = text.encode() if text is not None else json.dumps(body or {}).encode()
    resp = httpx.Response(status_code, content=content)
    resp.request = httpx.Request("POST", SYNC_URL)
    return resp


def sent_form(mock_post: MagicMock, call: int = -1) -> dict:
    return mock_post.call_args_list[call].kwargs["data"]


def sent_commands(mock_post: MagicMock, call: int = -1) -> list[dict]:
    return json.loads(sent_form(mock_post, call)["commands"])


@pytest.fixture
def client(config: TaskSyncConfig) -> TaskSyncClient:
    c = TaskSyncClient(config=config)
    yield c
    c.close()


def _synced(client: TaskSyncClient) -> None:
    with patch.object(client._transport._client, "post", return_value=make_response(200, FULL_SYNC_BODY)):
        client.full_sync()


# ---------------------------------------------------------------------------
# Construction
# ---------------------------------------------------------------------------


class TestConstruction:
    def test_token_and_kwargs_build_config(self):
        with TaskSyncClient("test-token-1234", timeout_seconds=5.0) as c:
            assert c.config.token == "test-token-1234"
            assert c.config.timeout_seconds == 5.0

    def test_config_and_token_are_exclusive(self, config):
        with pytest.raises(TypeError):
            TaskSyncClient("other", config=config)

    def test_initial_state(self, client):
        assert client.state == SyncState.UNINITIALIZED
        assert client.sync_token == "*"
        assert client.snapshot.items == {}


# ---------------------------------------------------------------------------
# full_sync / sync
# ---------------------------------------------------------------------------


class TestFullSync:
    def test_requests_everything_with_wildcard(self, client):
        with patch.object(client._transport._client, "post", return_value=make_response(200, FULL_SYNC_BODY)) as mock_post:
            snap = client.full_sync()
        form = sent_form(mock_post)
        assert form["sync_token"] == "*"
        assert json.loads(form["resource_types"]) == ["all"]
        assert "commands" not in form
        assert snap.sync_token == "t1"
        assert set(snap.items) == {"1", "2"}
        assert client.state == SyncState.SYNCED
        assert client.snapshot is snap

    def test_discards_prior_token_and_state(self, client):
        client.load(Snapshot(sync_token="old", items={"9": Item(id="9")}))
        body = {"sync_token": "t1", "items": [{"id": "1"}]}
        with patch.object(client._transport._client, "post", return_value=make_response(200, body)) as mock_post:
            snap = client.full_sync()
        assert sent_form(mock_post)["sync_token"] == "*"
        assert set(snap.items) == {"1"}


class TestSync:
    def test_uses_stored_token_and_incremental_types(self, client):
        _synced(client)
        body = {"sync_token": "t2", "items": [{"id": "2", "content": "Call mum today"}]}
        with patch.object(client._transport._client, "post", return_value=make_response(200, body)) as mock_post:
            snap = client.sync()
        form = sent_form(mock_post)
        assert form["sync_token"] == "t1"
        assert json.loads(form["resource_types"]) == ["items", "projects", "labels", "sections"]
        assert snap.sync_token == "t2"
        assert snap.items["2"].content == "Call mum today"
        assert snap.items["1"].content == "Pay rent"
        assert snap.projects["p1"].name == "Inbox"

    def test_before_first_sync_uses_wildcard(self, client):
        with patch.object(client._transport._client, "post", return_value=make_response(200, {"sync_token": "t1"})) as mock_post:
            client.sync()
        assert sent_form(mock_post)["sync_token"] == "*"
        assert client.sync_token == "t1"

    def test_resource_types_override(self, client):
        with patch.object(client._transport._client, "post", return_value=make_response(200, {"sync_token": "t1"})) as mock_post:
            client.sync(resource_types=["labels"])
        assert json.loads(sent_form(mock_post)["resource_types"]) == ["labels"]

    def test_command_failure_does_not_raise(self, client):
        _synced(client)
        ok = new_command(AddItemArgs(content="a"), uuid="u1", temp_id="tmp1")
        bad = new_command(UpdateItemArgs(id="404", content="b"), uuid="u2")
        body = {
            "sync_token": "t2",
            "items": [{"id": "3", "content": "a"}],
            "temp_id_mapping": {"tmp1": "3"},
            "sync_status": {"u1": "ok", "u2": {"error_code": 22, "error": "Item not found"}},
        }
        with patch.object(client._transport._client, "post", return_value=make_response(200, body)) as mock_post:
            snap = client.sync(ok, bad)
        assert [c["uuid"] for c in sent_commands(mock_post)] == ["u1", "u2"]
        assert snap.outcome_for("u1").ok
        assert snap.outcome_for("u2").error == "Item not found"
        assert client.sync_token == "t2"

    def test_command_metrics(self):
        hook = MagicMock()
        with TaskSyncClient("test-token-1234", metrics=hook) as c:
            cmd = new_command(UpdateItemArgs(id="1", content="x"), uuid="u")
            body = {"sync_token": "t1", "sync_status": {"u": {"error_code": 22, "error": "Item not found"}}}
            with patch.object(c._transport._client, "post", return_value=make_response(200, body)):
                c.sync(cmd)
        hook.increment.assert_any_call("tasksync.commands_total", tags={"type": "item_update"})
        hook.increment.assert_any_call("tasksync.command_failures_total", tags={"type": "item_update"})


class TestFailurePreservesState:
    @pytest.mark.parametrize(
        ("post_kwargs", "error"),
        [
            ({"side_effect": httpx.ConnectError("refused")}, TaskSyncTransportError),
            ({"return_value": make_response(500, text="oops")}, TaskSyncHTTPStatusError),
            ({"return_value": make_response(200, text="<html>")}, TaskSyncDecodeError),
            ({"return_value": make_response(200, {"sync_token": 7})}, TaskSyncDecodeError),
            ({"return_value": make_response(200, {"sync_token": "t2", "temp_id_mapping": {"tmp": "nope"}})}, TaskSyncTempIdUnresolvedError),
        ],
    )
    def test_sync_failure_keeps_token_and_snapshot(self, client, post_kwargs, error):
        _synced(client)
        before = client.snapshot
        with patch.object(client._transport._client, "post", **post_kwargs):
            with pytest.raises(error):
                client.sync(new_command(AddItemArgs(content="x")))
        assert client.snapshot is before
        assert client.sync_token == "t1"
        assert client.state == SyncState.SYNCED

    def test_failed_first_sync_stays_uninitialized(self, client):
        with patch.object(client._transport._client, "post", side_effect=httpx.ReadTimeout("slow")):
            with pytest.raises(TaskSyncTransportError):
                client.full_sync()
        assert client.state == SyncState.UNINITIALIZED
        assert client.sync_token == "*"

    def test_retry_resends_same_command(self, client):
        _synced(client)
        cmd = new_command(AddItemArgs(content="x"), uuid="u", temp_id="tmp")
        with patch.object(client._transport._client, "post", side_effect=httpx.ConnectError("refused")) as failed:
            with pytest.raises(TaskSyncTransportError):
                client.sync(cmd)
        body = {"sync_token": "t2", "items": [{"id": "5", "content": "x"}], "temp_id_mapping": {"tmp": "5"}, "sync_status": {"u": "ok"}}
        with patch.object(client._transport._client, "post", return_value=make_response(200, body)) as retried:
            client.sync(cmd)
        assert sent_form(failed) == sent_form(retried)


# ---------------------------------------------------------------------------
# Convenience operations
# ---------------------------------------------------------------------------


class TestAddTask:
    def test_returns_item_under_permanent_id(self, client):
        body = {
            "items": [{"id": "1", "content": "test item"}],
            "temp_id_mapping": {"tmp": "1"},
            "sync_status": {"u": "ok"},
        }
        with patch.object(client._transport._client, "post", return_value=make_response(200, body)) as mock_post:
            item = client.add_task(AddItemArgs(content="test item"), uuid="u", temp_id="tmp")
        assert item.id == "1"
        assert item.content == "test item"
        command = sent_commands(mock_post)[0]
        assert command == {"type": "item_add", "uuid": "u", "temp_id": "tmp", "args": {"content": "test item"}}

    def test_command_error_wraps_server_message(self, client):
        body = {"sync_status": {"u": {"error_code": 15, "error": "Invalid temporary id"}}}
        with patch.object(client._transport._client, "post", return_value=make_response(200, body)):
            with pytest.raises(TaskSyncCommandError) as exc_info:
                client.add_task(AddItemArgs(content="test item"), uuid="u", temp_id="tmp")
        err = exc_info.value
        assert "Invalid temporary id" in str(err)
        assert err.server_error == "Invalid temporary id"
        assert err.server_error_code == 15
        assert err.context["uuid"] == "u"
        assert err.context["command_type"] == "item_add"
        assert client.state == SyncState.SYNCED

    def test_empty_content_makes_no_network_call(self, client):
        with patch.object(client._transport, "execute") as mock_execute:
            with pytest.raises(TaskSyncValidationError):
                client.add_task(AddItemArgs(content=""))
        assert mock_execute.call_count == 0
        assert client.state == SyncState.UNINITIALIZED

    def test_missing_mapping_after_ok(self, client):
        body = {"sync_token": "t1", "sync_status": {"u": "ok"}}
        with patch.object(client._transport._client, "post", return_value=make_response(200, body)):
            with pytest.raises(TaskSyncTempIdUnresolvedError) as exc_info:
                client.add_task(AddItemArgs(content="x"), uuid="u", temp_id="tmp")
        assert exc_info.value.temp_id == "tmp"

    def test_missing_status_is_a_command_error(self, client):
        with patch.object(client._transport._client, "post", return_value=make_response(200, {"sync_token": "t1"})):
            with pytest.raises(TaskSyncCommandError) as exc_info:
                client.add_task(AddItemArgs(content="x"), uuid="u")
        assert exc_info.value.server_error_code is None

    def test_mapping_to_entity_of_another_kind(self, client):
        body = {
            "sync_token": "t1",
            "projects": [{"id": "9", "name": "Work"}],
            "temp_id_mapping": {"tmp": "9"},
            "sync_status": {"u": "ok"},
        }
        with patch.object(client._transport._client, "post", return_value=make_response(200, body)):
            with pytest.raises(TaskSyncTempIdUnresolvedError) as exc_info:
                client.add_task(AddItemArgs(content="x"), uuid="u", temp_id="tmp")
        assert exc_info.value.context == {"temp_id": "tmp", "permanent_id": "9"}
        assert "9" in client.snapshot.projects

    def test_null_server_error_message(self, client):
        body = {"sync_status": {"u": {"error_code": 15, "error": None}}}
        with patch.object(client._transport._client, "post", return_value=make_response(200, body)):
            with pytest.raises(TaskSyncCommandError) as exc_info:
                client.add_task(AddItemArgs(content="x"), uuid="u", temp_id="tmp")
        assert exc_info.value.server_error == ""
        assert "None" not in str(exc_info.value)


class TestOtherOperations:
    def test_update_task(self, client):
        _synced(client)
        body = {"sync_token": "t2", "items": [{"id": "1", "content": "Pay rent now"}], "sync_status": {"u": "ok"}}
        with patch.object(client._transport._client, "post", return_value=make_response(200, body)) as mock_post:
            item = client.update_task(UpdateItemArgs(id="1", content="Pay rent now"), uuid="u")
        assert item.content == "Pay rent now"
        command = sent_commands(mock_post)[0]
        assert command["type"] == "item_update"
        assert "temp_id" not in command

    def test_update_task_requires_id(self, client):
        with patch.object(client._transport, "execute") as mock_execute:
            with pytest.raises(TaskSyncValidationError):
                client.update_task(UpdateItemArgs(id="", content="x"))
        mock_execute.assert_not_called()

    def test_update_of_unknown_item_returns_none(self, client):
        body = {"sync_token": "t1", "sync_status": {"u": "ok"}}
        with patch.object(client._transport._client, "post", return_value=make_response(200, body)):
            assert client.update_task(UpdateItemArgs(id="404", content="x"), uuid="u") is None

    def test_complete_of_unknown_item_returns_none(self, client):
        body = {"sync_token": "t1", "sync_status": {"u": "ok"}}
        with patch.object(client._transport._client, "post", return_value=make_response(200, body)):
            assert client.complete_task("404", uuid="u") is None

    def test_add_project_mapped_to_item(self, client):
        body = {
            "sync_token": "t1",
            "items": [{"id": "p2", "content": "not a project"}],
            "temp_id_mapping": {"tmp": "p2"},
            "sync_status": {"u": "ok"},
        }
        with patch.object(client._transport._client, "post", return_value=make_response(200, body)):
            with pytest.raises(TaskSyncTempIdUnresolvedError) as exc_info:
                client.add_project(AddProjectArgs(name="Work"), uuid="u", temp_id="tmp")
        assert exc_info.value.temp_id == "tmp"

    def test_delete_task(self, client):
        _synced(client)
        body = {"sync_token": "t2", "items": [{"id": "2", "is_deleted": True}], "sync_status": {"u": "ok"}}
        with patch.object(client._transport._client, "post", return_value=make_response(200, body)) as mock_post:
            assert client.delete_task("2", uuid="u") is None
        assert sent_commands(mock_post)[0] == {"type": "item_delete", "uuid": "u", "args": {"id": "2"}}
        assert client.snapshot.items["2"].is_deleted

    def test_complete_task(self, client):
        _synced(client)
        body = {"sync_token": "t2", "items": [{"id": "2", "content": "Call mum", "checked": True}], "sync_status": {"u": "ok"}}
        with patch.object(client._transport._client, "post", return_value=make_response(200, body)) as mock_post:
            item = client.complete_task("2", uuid="u")
        assert item.checked
        assert sent_commands(mock_post)[0]["type"] == "item_close"

    def test_add_project(self, client):
        body = {"sync_token": "t1", "projects": [{"id": "p2", "name": "Work"}], "temp_id_mapping": {"tmp": "p2"}, "sync_status": {"u": "ok"}}
        with patch.object(client._transport._client, "post", return_value=make_response(200, body)) as mock_post:
            project = client.add_project(AddProjectArgs(name="Work"), uuid="u", temp_id="tmp")
        assert project.id == "p2"
        assert sent_commands(mock_post)[0]["type"] == "project_add"

    def test_add_label(self, client):
        body = {"sync_token": "t1", "labels": [{"id": "l2", "name": "Work"}], "temp_id_mapping": {"tmp": "l2"}, "sync_status": {"u": "ok"}}
        with patch.object(client._transport._client, "post", return_value=make_response(200, body)):
            label = client.add_label(AddLabelArgs(name="Work"), uuid="u", temp_id="tmp")
        assert label.name == "Work"


class TestDiffOperations:
    def test_diff_is_pure(self, client, est):
        _synced(client)
        item = client.snapshot.items["1"]
        form = ItemFormValues.from_item(item, est)
        form.labels = ["Home", "Work"]
        with patch.object(client._transport, "execute") as mock_execute:
            patch_args = client.diff(item, form, tz=est)
        mock_execute.assert_not_called()
        assert patch_args.to_dict() == {"id": "1", "labels": ["Home", "Work"]}

    def test_update_from_form_sends_only_changes(self, client, est):
        _synced(client)
        item = client.snapshot.items["1"]
        form = ItemFormValues.from_item(item, est)
        form.due = DueDateInput(has_due_date=True, absolute=datetime(2024, 3, 1, 14, 0), include_time=True)
        body = {
            "sync_token": "t2",
            "items": [{"id": "1", "content": "Pay rent", "due": {"date": "2024-03-01T19:00:00Z"}}],
            "sync_status": {"u": "ok"},
        }
        with patch.object(client._transport._client, "post", return_value=make_response(200, body)) as mock_post:
            updated = client.update_task_from_form(item, form, tz=est, uuid="u")
        assert sent_commands(mock_post)[0]["args"] == {"id": "1", "due": {"date": "2024-03-01T19:00:00Z"}}
        assert updated.due.date == "2024-03-01T19:00:00Z"

    def test_update_from_unchanged_form_skips_network(self, client, est):
        _synced(client)
        item = client.snapshot.items["1"]
        with patch.object(client._transport, "execute") as mock_execute:
            assert client.update_task_from_form(item, ItemFormValues.from_item(item, est), tz=est) is item
        mock_execute.assert_not_called()


class TestLoad:
    def test_load_marks_synced(self, client):
        client.load(Snapshot(sync_token="saved"))
        assert client.state == SyncState.SYNCED
        with patch.object(client._transport._client, "post", return_value=make_response(200, {"sync_token": "t2"})) as mock_post:
            client.sync()
        assert sent_form(mock_post)["sync_token"] == "saved"

    def test_load_wildcard_snapshot_is_uninitialized(self, client):
        client.load(Snapshot())
        assert client.state == SyncState.UNINITIALIZED


class TestLifecycle:
    def test_context_manager_closes_transport(self, config):
        c = TaskSyncClient(config=config)
        with patch.object(c._transport, "close") as mock_close:
            with c:
                pass
        mock_close.assert_called_once()


# ---------------------------------------------------------------------------
# AsyncTaskSyncClient
# ---------------------------------------------------------------------------


def _async_post(client: AsyncTaskSyncClient, **kwargs):
    return patch.object(client._transport._client, "post", new_callable=AsyncMock, **kwargs)


class TestAsyncClient:
    @pytest.mark.asyncio
    async def test_full_sync_then_sync(self, config):
        async with AsyncTaskSyncClient(config=config) as client:
            with _async_post(client, return_value=make_response(200, FULL_SYNC_BODY)):
                await client.full_sync()
            body = {"sync_token": "t2", "items": [{"id": "3", "content": "new"}]}
            with _async_post(client, return_value=make_response(200, body)) as mock_post:
                snap = await client.sync()
            assert sent_form(mock_post)["sync_token"] == "t1"
            assert set(snap.items) == {"1", "2", "3"}
            assert client.state == SyncState.SYNCED

    @pytest.mark.asyncio
    async def test_add_task(self, config):
        body = {
            "items": [{"id": "1", "content": "test item"}],
            "temp_id_mapping": {"tmp": "1"},
            "sync_status": {"u": "ok"},
        }
        async with AsyncTaskSyncClient(config=config) as client:
            with _async_post(client, return_value=make_response(200, body)):
                item = await client.add_task(AddItemArgs(content="test item"), uuid="u", temp_id="tmp")
        assert item.id == "1"
        assert item.content == "test item"

    @pytest.mark.asyncio
    async def test_command_error(self, config):
        body = {"sync_status": {"u": {"error_code": 15, "error": "Invalid temporary id"}}}
        async with AsyncTaskSyncClient(config=config) as client:
            with _async_post(client, return_value=make_response(200, body)):
                with pytest.raises(TaskSyncCommandError, match="Invalid temporary id"):
                    await client.add_task(AddItemArgs(content="test item"), uuid="u", temp_id="tmp")

    @pytest.mark.asyncio
    async def test_add_label_mapped_to_project(self, config):
        body = {
            "sync_token": "t1",
            "projects": [{"id": "9", "name": "Work"}],
            "temp_id_mapping": {"tmp": "9"},
            "sync_status": {"u": "ok"},
        }
        async with AsyncTaskSyncClient(config=config) as client:
            with _async_post(client, return_value=make_response(200, body)):
                with pytest.raises(TaskSyncTempIdUnresolvedError) as exc_info:
                    await client.add_label(AddLabelArgs(name="Work"), uuid="u", temp_id="tmp")
        assert exc_info.value.context["permanent_id"] == "9"

    @pytest.mark.asyncio
    async def test_empty_content_makes_no_network_call(self, config):
        async with AsyncTaskSyncClient(config=config) as client:
            with patch.object(client._transport, "execute", new_callable=AsyncMock) as mock_execute:
                with pytest.raises(TaskSyncValidationError):
                    await client.add_task(AddItemArgs(content="  "))
            mock_execute.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_transport_failure_preserves_state(self, config):
        async with AsyncTaskSyncClient(config=config) as client:
            await client.load(Snapshot(sync_token="saved"))
            before = client.snapshot
            with _async_post(client, side_effect=httpx.ConnectError("refused")):
                with pytest.raises(TaskSyncTransportError):
                    await client.sync()
            assert client.snapshot is before
            assert client.sync_token == "saved"
            assert client.state == SyncState.SYNCED

    @pytest.mark.asyncio
    async def test_cancellation_preserves_state(self, config):
        async with AsyncTaskSyncClient(config=config) as client:
            await client.load(Snapshot(sync_token="saved"))
            started = asyncio.Event()

            async def hang(*args, **kwargs):
                started.set()
                await asyncio.sleep(3600)

            with _async_post(client, side_effect=hang):
                task = asyncio.create_task(client.sync())
                await started.wait()
                assert client.state == SyncState.INCREMENTAL_SYNC_PENDING
                task.cancel()
                with pytest.raises(asyncio.CancelledError):
                    await task
            assert client.sync_token == "saved"
            assert client.state == SyncState.SYNCED

    @pytest.mark.asyncio
    async def test_concurrent_syncs_are_serialised(self, config):
        sent_tokens: list[str] = []
        responses = iter(["t1", "t2", "t3"])

        async def respond(path, data):
            sent_tokens.append(data["sync_token"])
            await asyncio.sleep(0)
            return make_response(200, {"sync_token": next(responses)})

        async with AsyncTaskSyncClient(config=config) as client:
            with _async_post(client, side_effect=respond):
                await asyncio.gather(client.sync(), client.sync(), client.sync())
        assert sent_tokens == ["*", "t1", "t2"]
        assert client.sync_token == "t3"
