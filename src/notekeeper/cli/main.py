"""NoteKeeper CLI — run the server and manage notes from a terminal.

Usage:
    notekeeper serve                               # Run the API with uvicorn
    notekeeper migrate                             # alembic upgrade head
    notekeeper register alice                      # Create a user → id + token
    notekeeper notes add "shopping" -c "milk"      # Create a note
    notekeeper notes list --sort desc              # List notes
    notekeeper notes show 7                        # Show one note
    notekeeper notes edit 7 "shopping" -c "eggs"   # Replace title/content
    notekeeper notes rm 7                          # Delete a note

Note commands need the user id and token printed by `register`, passed as
--user-id/--token or via NOTEKEEPER_USER_ID/NOTEKEEPER_TOKEN.
"""

from __future__ import annotations

import asyncio
import concurrent.futures
import json
import os
import sys

import click
import httpx

# ---------------------------------------------------------------------------
# Config
# ---------------------------------------------------------------------------

DEFAULT_API_URL = "http://localhost:8000"


def _api_url() -> str:
    return os.environ.get("NOTEKEEPER_API_URL", DEFAULT_API_URL).rstrip("/")


def _client() -> httpx.AsyncClient:
    """Build an async HTTP client pointed at the NoteKeeper backend."""
    return httpx.AsyncClient(base_url=_api_url(), timeout=30.0)


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
        # No running loop — normal CLI invocation
        return asyncio.run(coro)
    else:
        # Already inside an event loop (e.g. test runner) — run in a thread
        with concurrent.futures.ThreadPoolExecutor(max_workers=1) as pool:
            return pool.submit(asyncio.run, coro).result()


def _check(r: httpx.Response) -> dict:
    """Return the JSON body, or print the API's error detail and exit."""
    if r.is_success:
        return r.json()
    try:
        detail = r.json().get("detail", r.text)
    except ValueError:
        detail = r.text
    if not isinstance(detail, str):
        detail = json.dumps(detail)
    click.secho(f"Error ({r.status_code}): {detail}", fg="red", err=True)
    sys.exit(1)


def _auth_headers(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


def _print_note(note: dict) -> None:
    click.secho(f"#{note['id']}  {note['title']}", bold=True)
    click.echo(f"  created: {note['created_at']}")
    click.echo(f"  updated: {note['updated_at']}")
    if note.get("content"):
        click.echo()
        click.echo(note["content"])


# ---------------------------------------------------------------------------
# CLI group
# ---------------------------------------------------------------------------


@click.group()
@click.version_option(version="0.1.0", prog_name="notekeeper")
def main():
    """NoteKeeper — multi-tenant notes behind bearer credentials."""


@main.command()
@click.option("--host", default=None, help="Bind address (default: NOTEKEEPER_HOST)")
@click.option("--port", default=None, type=int, help="Port (default: NOTEKEEPER_PORT)")
@click.option("--reload", is_flag=True, help="Reload on code changes")
def serve(host: str | None, port: int | None, reload: bool):
    """Run the API server."""
    import uvicorn

    from notekeeper.config import get_settings

    settings = get_settings()
    uvicorn.run(
        "notekeeper.main:create_app",
        factory=True,
        host=host or settings.host,
        port=port or settings.port,
        reload=reload,
        log_config=None,
    )


@main.command()
@click.option("--config", "config_path", default="alembic.ini", show_default=True)
def migrate(config_path: str):
    """Apply database migrations (alembic upgrade head)."""
    from alembic import command
    from alembic.config import Config

    command.upgrade(Config(config_path), "head")
    click.secho("Database is up to date.", fg="green")


@main.command()
@click.argument("username")
def register(username: str):
    """Create a user and print its id and access token."""
    _run(_register_impl(username))


async def _register_impl(username: str):
    async with _client() as c:
        r = await c.post("/api/v1/users", json={"username": username})
        user = _check(r)

    click.secho(f"Registered {username} (id {user['id']})", fg="green")
    click.echo()
    click.echo(f"export NOTEKEEPER_USER_ID={user['id']}")
    click.echo(f"export NOTEKEEPER_TOKEN={user['access_token']}")


# ---------------------------------------------------------------------------
# notekeeper notes ...
# ---------------------------------------------------------------------------


@main.group()
@click.option("--user-id", envvar="NOTEKEEPER_USER_ID", required=True, type=int,
              help="Your user id (or set NOTEKEEPER_USER_ID)")
@click.option("--token", envvar="NOTEKEEPER_TOKEN", required=True,
              help="Access token (or set NOTEKEEPER_TOKEN)")
@click.pass_context
def notes(ctx: click.Context, user_id: int, token: str):
    """Manage your notes."""
    ctx.obj = {"user_id": user_id, "token": token}


@notes.command("add")
@click.argument("title")
@click.option("--content", "-c", default="", help="Note body")
@click.pass_obj
def notes_add(obj: dict, title: str, content: str):
    """Create a note."""
    _run(_notes_add_impl(obj["user_id"], obj["token"], title, content))


async def _notes_add_impl(user_id: int, token: str, title: str, content: str):
    async with _client() as c:
        r = await c.post(
            f"/api/v1/users/{user_id}/notes",
            json={"title": title, "content": content},
            headers=_auth_headers(token),
        )
        created = _check(r)
    click.secho(f"Note #{created['id']} created", fg="green")


@notes.command("list")
@click.option("--limit", "-l", default=10, show_default=True, help="Page size")
@click.option("--offset", "-o", default=0, show_default=True, help="Notes to skip")
@click.option("--sort", "-s", type=click.Choice(["asc", "desc"]), default="asc",
              show_default=True, help="Order by creation time")
@click.pass_obj
def notes_list(obj: dict, limit: int, offset: int, sort: str):
    """List your notes."""
    _run(_notes_list_impl(obj["user_id"], obj["token"], limit, offset, sort))


async def _notes_list_impl(user_id: int, token: str, limit: int, offset: int, sort: str):
    async with _client() as c:
        r = await c.get(
            f"/api/v1/users/{user_id}/notes",
            params={"limit": limit, "offset": offset, "sort": sort},
            headers=_auth_headers(token),
        )
        if r.status_code == 404:
            click.echo("No notes yet.")
            return
        found = _check(r)["notes"]

    if not found:
        click.echo("No notes in this range.")
        return

    click.secho(f"Notes ({len(found)}):", bold=True)
    click.echo()
    for n in found:
        click.echo(f"  #{n['id']:<6d}  {n['created_at'][:19]}  {n['title'][:60]}")


@notes.command("show")
@click.argument("note_id", type=int)
@click.pass_obj
def notes_show(obj: dict, note_id: int):
    """Show one note."""
    _run(_notes_show_impl(obj["user_id"], obj["token"], note_id))


async def _notes_show_impl(user_id: int, token: str, note_id: int):
    async with _client() as c:
        r = await c.get(
            f"/api/v1/users/{user_id}/notes/{note_id}",
            headers=_auth_headers(token),
        )
        note = _check(r)
    _print_note(note)


@notes.command("edit")
@click.argument("note_id", type=int)
@click.argument("title")
@click.option("--content", "-c", default="", help="New note body")
@click.pass_obj
def notes_edit(obj: dict, note_id: int, title: str, content: str):
    """Replace a note's title and content."""
    _run(_notes_edit_impl(obj["user_id"], obj["token"], note_id, title, content))


async def _notes_edit_impl(user_id: int, token: str, note_id: int, title: str, content: str):
    async with _client() as c:
        r = await c.put(
            f"/api/v1/users/{user_id}/notes/{note_id}",
            json={"title": title, "content": content},
            headers=_auth_headers(token),
        )
        _check(r)
    click.secho(f"Note #{note_id} updated", fg="green")


@notes.command("rm")
@click.argument("note_id", type=int)
@click.confirmation_option(prompt="Delete this note?")
@click.pass_obj
def notes_rm(obj: dict, note_id: int):
    """Delete a note."""
    _run(_notes_rm_impl(obj["user_id"], obj["token"], note_id))


async def _notes_rm_impl(user_id: int, token: str, note_id: int):
    async with _client() as c:
        r = await c.delete(
            f"/api/v1/users/{user_id}/notes/{note_id}",
            headers=_auth_headers(token),
        )
        _check(r)
    click.secho(f"Note #{note_id} deleted", fg="green")


if __name__ == "__main__":
    main()
