"""TodoBridge CLI — run the server, list items, drive the command bridge.

Usage:
    todobridge serve                                 # Run the API (uvicorn)
    todobridge items                                 # List items over HTTP
    todobridge send getall                           # Command over pub/sub, wait for reply
    todobridge send create --title "Buy milk"
    todobridge send updatepartial --id 3 --completed
    todobridge send delete --id 3 --no-wait
"""

from __future__ import annotations

import asyncio
import concurrent.futures
import json
import os
import sys
import uuid
from typing import Any, Optional

import click
import httpx
import redis.asyncio as aioredis

from todobridge import __version__
from todobridge.bridge.commands import CommandName
from todobridge.bridge.topics import command_topic, derive_prefix, response_topic
from todobridge.config import settings

# ---------------------------------------------------------------------------
# Config
# ---------------------------------------------------------------------------

DEFAULT_API_URL = "http://localhost:8000"


def _api_url() -> str:
    return os.environ.get("TODOBRIDGE_API_URL", DEFAULT_API_URL).rstrip("/")


def _client() -> httpx.AsyncClient:
    """Build an async HTTP client pointed at the TodoBridge API."""
    return httpx.AsyncClient(base_url=_api_url(), timeout=30.0)


def _broker() -> aioredis.Redis:
    return aioredis.Redis(
        host=settings.bridge_broker,
        port=settings.bridge_port,
        decode_responses=True,
    )


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _run(coro):
    """Run an async coroutine from synchronous Click handler.

    Handles nested event loops (e.g. when invoked via Click CliRunner
    inside an existing async context like tests) by offloading to a thread.
    """
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return asyncio.run(coro)
    else:
        with concurrent.futures.ThreadPoolExecutor(max_workers=1) as pool:
            return pool.submit(asyncio.run, coro).result()


def _pretty_json(data: dict | list) -> str:
    return json.dumps(data, indent=2, default=str)


def _print_table(rows: list[dict], columns: list[tuple[str, str, int]]):
    """Print a simple ASCII table.

    columns: list of (header, dict_key, width)
    """
    header = "  ".join(h.ljust(w) for h, _, w in columns)
    click.secho(header, bold=True)
    click.echo("-" * len(header))
    for row in rows:
        line = "  ".join(str(row.get(k, "—"))[:w].ljust(w) for _, k, w in columns)
        click.echo(line)


def build_command_payload(
    item_id: Optional[int] = None,
    title: Optional[str] = None,
    description: Optional[str] = None,
    completed: Optional[bool] = None,
    correlation_id: Optional[str] = None,
) -> dict[str, Any]:
    """Command payload with only the fields that were given."""
    payload: dict[str, Any] = {}
    if item_id is not None:
        payload["id"] = item_id
    if title is not None:
        payload["title"] = title
    if description is not None:
        payload["description"] = description
    if completed is not None:
        payload["isCompleted"] = completed
    if correlation_id:
        payload["correlationId"] = correlation_id
    return payload


# ---------------------------------------------------------------------------
# CLI group
# ---------------------------------------------------------------------------


@click.group()
@click.version_option(version=__version__, prog_name="todobridge")
def main():
    """TodoBridge — todo items with WebSocket and pub/sub side channels."""


# ---------------------------------------------------------------------------
# todobridge serve
# ---------------------------------------------------------------------------


@main.command()
@click.option("--host", default=None, help="Bind address (default: TODOBRIDGE_HOST)")
@click.option("--port", type=int, default=None, help="Port (default: TODOBRIDGE_PORT)")
@click.option("--reload", is_flag=True, help="Auto-reload on code changes")
def serve(host: Optional[str], port: Optional[int], reload: bool):
    """Run the API server."""
    import uvicorn

    uvicorn.run(
        "todobridge.main:app",
        host=host or settings.host,
        port=port or settings.port,
        reload=reload,
    )


# ---------------------------------------------------------------------------
# todobridge items
# ---------------------------------------------------------------------------


@main.command()
@click.option("--json", "as_json", is_flag=True, help="Print raw JSON")
def items(as_json: bool):
    """List todo items via the REST API."""
    _run(_items_impl(as_json))


async def _items_impl(as_json: bool):
    async with _client() as c:
        r = await c.get("/api/v1/todoitems")
        r.raise_for_status()
        rows = r.json()

    if as_json:
        click.echo(_pretty_json(rows))
        return
    if not rows:
        click.echo("No items.")
        return
    for row in rows:
        row["done"] = "yes" if row.get("isCompleted") else "no"
    _print_table(rows, [
        ("ID", "id", 6),
        ("TITLE", "title", 40),
        ("DONE", "done", 5),
        ("CREATED", "createdAt", 25),
    ])


# ---------------------------------------------------------------------------
# todobridge send
# ---------------------------------------------------------------------------


@main.command()
@click.argument("command", type=click.Choice([c.value for c in CommandName], case_sensitive=False))
@click.option("--id", "item_id", type=int, help="Item id (get, update, updatepartial, delete)")
@click.option("--title", help="Item title (create, update)")
@click.option("--description", help="Item description")
@click.option("--completed/--not-completed", default=None, help="Completion flag")
@click.option("--timeout", type=float, default=10.0, show_default=True,
              help="Seconds to wait for the correlated response")
@click.option("--no-wait", is_flag=True, help="Publish and return without waiting")
def send(command: str, item_id: Optional[int], title: Optional[str],
         description: Optional[str], completed: Optional[bool],
         timeout: float, no_wait: bool):
    """Send COMMAND over the pub/sub bridge and print the response."""
    ok = _run(_send_impl(command.lower(), item_id, title, description,
                         completed, timeout, no_wait))
    if not ok:
        sys.exit(1)


async def _send_impl(command: str, item_id: Optional[int], title: Optional[str],
                     description: Optional[str], completed: Optional[bool],
                     timeout: float, no_wait: bool) -> bool:
    prefix = derive_prefix(settings.bridge_topic)
    correlation_id = uuid.uuid4().hex
    payload = build_command_payload(item_id, title, description, completed, correlation_id)
    reply_topic = response_topic(prefix, correlation_id)

    r = _broker()
    pubsub = r.pubsub()
    try:
        # Subscribe before publishing so the reply can't slip past us
        if not no_wait:
            await pubsub.subscribe(reply_topic)
        receivers = await r.publish(command_topic(prefix, command), json.dumps(payload))
        if receivers == 0:
            click.secho("Warning: no bridge is subscribed to the command topic", fg="yellow", err=True)
        if no_wait:
            click.echo(f"Published {command} (correlation id {correlation_id})")
            return True

        try:
            response = await asyncio.wait_for(_next_message(pubsub), timeout=timeout)
        except asyncio.TimeoutError:
            click.secho(f"Timed out after {timeout:g}s waiting on {reply_topic}", fg="red", err=True)
            return False
    finally:
        await pubsub.aclose()
        await r.aclose()

    click.echo(_pretty_json(response))
    return bool(response.get("success"))


async def _next_message(pubsub) -> dict:
    async for message in pubsub.listen():
        if message["type"] == "message":
            return json.loads(message["data"])
    raise RuntimeError("subscription closed before a response arrived")


if __name__ == "__main__":
    main()
