"""Tests for the gcloud-secrets MCP server."""

from __future__ import annotations

import json
import threading
from unittest.mock import patch

import pytest

from gcloud_secrets import mcp_server
from gcloud_secrets.mcp_server import _error_response, _json_response, call_tool, list_tools
from gcloud_secrets.secrets.domains.models import Config
from gcloud_secrets.secrets.workflows import secret_operations


def _extract_json(result: list) -> dict | list:
    """Parse the JSON from a TextContent response list."""
    assert len(result) == 1
    return json.loads(result[0].text)


@pytest.fixture
def patched_store(store):
    with patch.object(mcp_server, "_get_store", return_value=(store, Config("central-project"))):
        yield store


class TestHelpers:
    def test_json_response_structure(self):
        result = _json_response({"key": "value"})
        assert result[0].type == "text"
        assert json.loads(result[0].text) == {"key": "value"}

    def test_error_response_structure(self):
        assert _extract_json(_error_response("bad")) == {"error": "bad"}


class TestListTools:
    @pytest.mark.asyncio
    async def test_all_tools_registered(self):
        tools = await list_tools()
        assert {tool.name for tool in tools} == {
            "secrets_init",
            "secrets_list",
            "secrets_pull",
            "secrets_push",
            "secrets_delete",
            "secrets_scan",
        }


class TestCallTool:
    @pytest.mark.asyncio
    async def test_unknown_tool(self):
        result = await call_tool("nope", {})
        assert "Unknown tool" in _extract_json(result)["error"]

    @pytest.mark.asyncio
    async def test_push_then_pull(self, patched_store):
        pushed = _extract_json(await call_tool("secrets_push", {
            "folder": "myApp", "envContent": "A=1\nB=2\n", "environment": "dev",
        }))
        assert pushed["folder"] == "my-app"
        assert pushed["created"] == ["A", "B"]

        pulled = await call_tool("secrets_pull", {"folder": "my-app", "environment": "dev"})
        assert pulled[0].text == "A=1\nB=2"

    @pytest.mark.asyncio
    async def test_push_requires_content(self, patched_store):
        result = await call_tool("secrets_push", {"folder": "app"})
        assert _extract_json(result) == {"error": "envContent is required"}

    @pytest.mark.asyncio
    async def test_list_folders_and_keys(self, patched_store):
        patched_store.add("app", "A", "1", environment="prod")

        folders = _extract_json(await call_tool("secrets_list", {}))
        assert folders == {"folders": {"app": ["prod"]}}

        keys = _extract_json(await call_tool("secrets_list", {"folder": "app", "environment": "prod"}))
        assert keys["keys"] == ["A"]

    @pytest.mark.asyncio
    async def test_delete(self, patched_store):
        patched_store.add("app", "A", "1")
        result = _extract_json(await call_tool("secrets_delete", {"folder": "app", "key": "A"}))
        assert result == {"folder": "app", "deleted": ["A"]}

    @pytest.mark.asyncio
    async def test_scan(self, patched_store, tmp_path, make_repo):
        make_repo("repoA", {".env": "FOO=bar\n"})
        result = _extract_json(await call_tool("secrets_scan", {"basePath": str(tmp_path)}))
        assert result["totals"]["new"] == 1

    @pytest.mark.asyncio
    async def test_handler_errors_become_error_responses(self):
        with patch.object(mcp_server, "_get_store", side_effect=RuntimeError("no credentials")):
            result = await call_tool("secrets_list", {})
        assert _extract_json(result) == {"error": "secrets_list failed: no credentials"}

    @pytest.mark.asyncio
    async def test_init(self, temp_home):
        result = await call_tool("secrets_init", {"projectId": "central-project", "enableApi": False})
        assert "central-project" in result[0].text
        assert (temp_home / ".secrets-manager.conf").exists()

    @pytest.mark.asyncio
    async def test_init_enables_api_by_default(self, temp_home):
        with patch.object(secret_operations.subprocess, "run") as run:
            await call_tool("secrets_init", {"projectId": "central-project"})

        command = run.call_args.args[0]
        assert command[:3] == ["gcloud", "services", "enable"]
        assert "--project=central-project" in command

    @pytest.mark.asyncio
    async def test_init_ignores_gcloud_failure(self, temp_home):
        with patch.object(secret_operations.subprocess, "run", side_effect=FileNotFoundError("gcloud")):
            result = await call_tool("secrets_init", {"projectId": "central-project"})

        assert "Configured central project: central-project" in result[0].text
        assert (temp_home / ".secrets-manager.conf").exists()

    @pytest.mark.asyncio
    async def test_store_calls_run_off_the_event_loop(self, patched_store):
        threads = []

        def list_folders(store):
            threads.append(threading.current_thread())
            return {}

        with patch.object(secret_operations, "list_folders", side_effect=list_folders):
            await call_tool("secrets_list", {})

        assert threads and threads[0] is not threading.main_thread()
