"""
gcloud-secrets MCP server: the CLI's operations as Model Context Protocol tools.

Tools:
    secrets_init    - Set the central project
    secrets_list    - List folders, or the keys of one folder
    secrets_pull    - Return a folder's secrets as .env content
    secrets_push    - Upload .env content to a folder
    secrets_delete  - Delete a key or a whole folder
    secrets_scan    - Report .env sync status of git repositories

Invocation:
    gcloud-secrets-mcp
    python -m gcloud_secrets.mcp_server

Client configuration (.mcp.json):
    {"mcpServers": {"gcloud-secrets": {"command": "gcloud-secrets-mcp"}}}
"""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import Any

from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import TextContent, Tool

from .secrets.domains.config_loader import load_config, require_project
from .secrets.domains.gcp_client import GCPSecretClient
from .secrets.domains.naming import normalize_folder
from .secrets.workflows import secret_operations
from .secrets.workflows.scan import scan

logger = logging.getLogger("gcloud_secrets.mcp")

server = Server("gcloud-secrets")

_ENVIRONMENT_PROPERTY = {
    "type": "string",
    "description": "Environment such as dev or prod (omit for the configured default)",
}


def _json_response(data: Any) -> list[TextContent]:
    """Wrap data as a JSON text content response."""
    return [TextContent(type="text", text=json.dumps(data, indent=2, default=str))]


def _text_response(text: str) -> list[TextContent]:
    """Wrap a plain string as a text content response."""
    return [TextContent(type="text", text=text)]


def _error_response(message: str) -> list[TextContent]:
    """Return an error message as text content."""
    return [TextContent(type="text", text=json.dumps({"error": message}))]


def _get_store():
    """Client for the configured central project (raises ConfigError if unset)."""
    config = load_config()
    return GCPSecretClient(require_project(config)), config


def _environment(args: dict, config) -> str | None:
    if "environment" in args:
        return args["environment"] or None
    return config.default_environment


def _folder(args: dict) -> str:
    return normalize_folder(args.get("folder") or Path.cwd().name)


@server.list_tools()
async def list_tools() -> list[Tool]:
    """Register all gcloud-secrets tools with the MCP server."""
    return [
        Tool(
            name="secrets_init",
            description="Set the central Secret Manager project used for all folders.",
            inputSchema={
                "type": "object",
                "properties": {
                    "projectId": {"type": "string", "description": "GCP project ID"},
                    "defaultEnvironment": {"type": "string", "description": "Default environment"},
                    "enableApi": {
                        "type": "boolean",
                        "description": (
                            "Run 'gcloud services enable' for Secret Manager first "
                            "(default: true; failures are ignored)"
                        ),
                    },
                },
                "required": ["projectId"],
            },
        ),
        Tool(
            name="secrets_list",
            description=(
                "List every folder in Secret Manager with its environments, "
                "or the keys of one folder."
            ),
            inputSchema={
                "type": "object",
                "properties": {
                    "folder": {"type": "string", "description": "Folder name (omit to list folders)"},
                    "environment": _ENVIRONMENT_PROPERTY,
                },
            },
        ),
        Tool(
            name="secrets_pull",
            description="Fetch a folder's secrets from Secret Manager as .env content.",
            inputSchema={
                "type": "object",
                "properties": {
                    "folder": {"type": "string", "description": "Folder name (default: current directory name)"},
                    "environment": _ENVIRONMENT_PROPERTY,
                },
            },
        ),
        Tool(
            name="secrets_push",
            description="Upload .env / .dev.vars content to Secret Manager.",
            inputSchema={
                "type": "object",
                "properties": {
                    "folder": {"type": "string", "description": "Folder name (default: current directory name)"},
                    "envContent": {"type": "string", "description": ".env content (KEY=VALUE lines)"},
                    "environment": _ENVIRONMENT_PROPERTY,
                },
                "required": ["envContent"],
            },
        ),
        Tool(
            name="secrets_delete",
            description="Delete one secret, or every secret of a folder when no key is given.",
            inputSchema={
                "type": "object",
                "properties": {
                    "folder": {"type": "string", "description": "Folder name"},
                    "key": {"type": "string", "description": "Key to delete (omit for the whole folder)"},
                    "environment": _ENVIRONMENT_PROPERTY,
                },
                "required": ["folder"],
            },
        ),
        Tool(
            name="secrets_scan",
            description=(
                "Find git repositories and report whether their .env files are "
                "in sync (OK), differ (DIFF) or are not registered (NEW)."
            ),
            inputSchema={
                "type": "object",
                "properties": {
                    "basePath": {"type": "string", "description": "Directory to scan (default: home)"},
                    "environment": {"type": "string", "description": "Only check this environment"},
                    "maxDepth": {"type": "integer", "description": "Directory depth limit (default: 5)"},
                },
            },
        ),
    ]


@server.call_tool()
async def call_tool(name: str, arguments: dict) -> list[TextContent]:
    """Dispatch tool calls to the appropriate handler."""
    handlers = {
        "secrets_init": _handle_init,
        "secrets_list": _handle_list,
        "secrets_pull": _handle_pull,
        "secrets_push": _handle_push,
        "secrets_delete": _handle_delete,
        "secrets_scan": _handle_scan,
    }
    handler = handlers.get(name)
    if handler is None:
        return _error_response(f"Unknown tool: {name}")
    try:
        return await handler(arguments or {})
    except Exception as exc:
        logger.exception("Tool '%s' failed", name)
        return _error_response(f"{name} failed: {exc}")


async def _handle_init(args: dict) -> list[TextContent]:
    """Write the config file."""
    project_id = args.get("projectId")
    if not project_id:
        return _error_response("projectId is required")
    config_path = await asyncio.to_thread(
        secret_operations.init_config,
        project_id,
        default_environment=args.get("defaultEnvironment"),
        enable_api=bool(args.get("enableApi", True)),
    )
    return _text_response(f"Configured central project: {project_id}\nConfig file: {config_path}")


async def _handle_list(args: dict) -> list[TextContent]:
    """List folders or keys."""
    store, config = await asyncio.to_thread(_get_store)
    if not args.get("folder"):
        folders = await asyncio.to_thread(secret_operations.list_folders, store)
        return _json_response({"folders": folders})

    folder = _folder(args)
    environment = _environment(args, config)
    keys = await asyncio.to_thread(secret_operations.list_keys, store, folder, environment)
    return _json_response({"folder": folder, "environment": environment, "keys": keys})


async def _handle_pull(args: dict) -> list[TextContent]:
    """Return .env content for a folder."""
    store, config = await asyncio.to_thread(_get_store)
    folder = _folder(args)
    environment = _environment(args, config)
    content = await asyncio.to_thread(secret_operations.pull_env, store, folder, environment)
    if not content:
        return _text_response(f"No secrets found in folder '{folder}'")
    return _text_response(content)


async def _handle_push(args: dict) -> list[TextContent]:
    """Upload .env content."""
    env_content = args.get("envContent")
    if not env_content:
        return _error_response("envContent is required")

    store, config = await asyncio.to_thread(_get_store)
    result = await asyncio.to_thread(
        secret_operations.push_env, store, _folder(args), env_content, _environment(args, config)
    )
    return _json_response({
        "folder": result.folder,
        "environment": result.environment,
        "created": result.created,
        "updated": result.updated,
        "skipped": result.skipped,
    })


async def _handle_delete(args: dict) -> list[TextContent]:
    """Delete a key or folder."""
    folder = args.get("folder")
    if not folder:
        return _error_response("folder is required")

    store, config = await asyncio.to_thread(_get_store)
    deleted = await asyncio.to_thread(
        secret_operations.delete_secrets,
        store,
        folder,
        key=args.get("key"),
        environment=_environment(args, config),
    )
    if not deleted:
        return _text_response(f"No secrets found in folder '{folder}'")
    return _json_response({"folder": folder, "deleted": deleted})


async def _handle_scan(args: dict) -> list[TextContent]:
    """Run a read-only scan."""
    store, _config = await asyncio.to_thread(_get_store)
    base_path = args.get("basePath") or str(Path.home())
    report = await asyncio.to_thread(
        scan,
        base_path,
        store,
        environment=args.get("environment") or None,
        max_depth=int(args.get("maxDepth", 5)),
    )
    return _json_response(report.to_dict())


def main() -> None:
    """Run the MCP server on stdio transport."""
    logging.basicConfig(level=logging.WARNING, format="%(name)s: %(message)s")
    asyncio.run(_run_server())


async def _run_server() -> None:
    """Async entry point for the stdio MCP server."""
    async with stdio_server() as (read_stream, write_stream):
        await server.run(read_stream, write_stream, server.create_initialization_options())


if __name__ == "__main__":
    main()
