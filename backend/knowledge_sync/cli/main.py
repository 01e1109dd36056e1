"""CLI entrypoint for Knowledge Sync."""

from __future__ import annotations

import asyncio
import json
import os
from typing import Optional

import requests
import typer

app = typer.Typer(name="ksync", help="Knowledge Sync command-line interface")

DEFAULT_HOST = "http://127.0.0.1:5173"
FINISHED_STATES = {"completed", "failed"}


def _resolve_host(override: Optional[str]) -> str:
    if override:
        return override.rstrip("/")
    env_host = os.environ.get("KSYNC_HOST")
    if env_host:
        return env_host.rstrip("/")
    return DEFAULT_HOST


def _request(method: str, path: str, host: Optional[str] = None, **kwargs) -> requests.Response:
    base = _resolve_host(host)
    url = f"{base}{path}"
    try:
        resp = requests.request(method, url, timeout=60, **kwargs)
    except requests.RequestException as exc:
        typer.echo(f"Request failed: {exc}", err=True)
        raise typer.Exit(code=1) from exc
    if not resp.ok:
        try:
            detail = resp.json()
        except ValueError:
            detail = resp.text
        typer.echo(f"Request failed ({resp.status_code}): {detail}", err=True)
        raise typer.Exit(code=1)
    return resp


def _echo_json(resp: requests.Response) -> None:
    typer.echo(json.dumps(resp.json(), indent=2))


@app.command()
def connect(
    connection_id: str = typer.Argument(..., help="Connection identifier"),
    integration_id: str = typer.Option(..., "--integration-id", help="Integration identifier"),
    name: str = typer.Option(..., "--name", help="Integration display name"),
    logo: Optional[str] = typer.Option(None, "--logo", help="Integration logo URI"),
    host: Optional[str] = typer.Option(None, "--host", help="Override backend host"),
) -> None:
    """Start syncing a connected source."""
    body = {"integrationId": integration_id, "integrationName": name, "integrationLogo": logo}
    _echo_json(_request("POST", f"/connections/{connection_id}/sync", host=host, json=body))


@app.command()
def resync(
    connection_id: str = typer.Argument(..., help="Connection identifier"),
    host: Optional[str] = typer.Option(None, "--host", help="Override backend host"),
) -> None:
    """Discard synced documents and sync again."""
    _echo_json(_request("POST", f"/connections/{connection_id}/resync", host=host))


@app.command()
def status(
    connection_id: str = typer.Argument(..., help="Connection identifier"),
    watch: bool = typer.Option(False, "--watch", help="Follow progress until the sync finishes"),
    interval: float = typer.Option(25.0, "--interval", min=0.1, max=50, help="Longest wait per update in seconds"),
    host: Optional[str] = typer.Option(None, "--host", help="Override backend host"),
) -> None:
    """Show sync status for a connection."""
    payload = _request("GET", f"/connections/{connection_id}/sync", host=host).json()
    while watch and payload["status"] not in FINISHED_STATES:
        typer.echo(f"{payload['status']}: {payload['documentsReceived']} documents")
        payload = _request(
            "GET",
            f"/connections/{connection_id}/sync/changes",
            host=host,
            params={"timeout": interval},
        ).json()
    typer.echo(json.dumps(payload, indent=2))
    if payload["status"] == "failed":
        raise typer.Exit(code=1)


@app.command()
def knowledge(
    integration: Optional[str] = typer.Option(None, "--integration", help="Filter by integration id"),
    host: Optional[str] = typer.Option(None, "--host", help="Override backend host"),
) -> None:
    """List connected sources."""
    params = {"integration_id": integration} if integration else None
    _echo_json(_request("GET", "/knowledge", host=host, params=params))


@app.command("ls")
def list_folder(
    connection_id: str = typer.Argument(..., help="Connection identifier"),
    folder: Optional[str] = typer.Option(None, "--folder", help="Folder id; root when omitted"),
    search: str = typer.Option("", "--search", help="Search titles across the whole tree"),
    host: Optional[str] = typer.Option(None, "--host", help="Override backend host"),
) -> None:
    """List a folder (or search results) with breadcrumbs."""
    params: dict[str, str] = {"search": search}
    if folder:
        params["folder"] = folder
    payload = _request("GET", f"/connections/{connection_id}/browse", host=host, params=params).json()
    if payload["breadcrumbs"]:
        typer.echo(" > ".join(["Root", *(crumb["title"] for crumb in payload["breadcrumbs"])]))
    for notice in (payload.get("badge"), payload.get("truncationNotice")):
        if notice:
            typer.echo(f"* {notice}")
    for item in [*payload["folders"], *payload["files"]]:
        mark = "[x]" if item["isSubscribed"] else "[ ]"
        kind = "/" if item["canHaveChildren"] else ""
        typer.echo(f"{mark} {item['title']}{kind}  ({item['id']})")
    if not payload["folders"] and not payload["files"]:
        typer.echo("No items found")


@app.command()
def toggle(
    connection_id: str = typer.Argument(..., help="Connection identifier"),
    document_id: str = typer.Argument(..., help="Document or folder id"),
    host: Optional[str] = typer.Option(None, "--host", help="Override backend host"),
) -> None:
    """Toggle a document's subscription, including everything below a folder."""
    _echo_json(_request("POST", f"/connections/{connection_id}/documents/{document_id}/toggle", host=host))


@app.command()
def disconnect(
    connection_id: str = typer.Argument(..., help="Connection identifier"),
    host: Optional[str] = typer.Option(None, "--host", help="Override backend host"),
) -> None:
    """Remove a connection together with its synced documents."""
    _echo_json(_request("DELETE", f"/connections/{connection_id}", host=host))


@app.command()
def browse(
    connection_id: str = typer.Argument(..., help="Connection identifier"),
    host: Optional[str] = typer.Option(None, "--host", help="Override backend host"),
) -> None:
    """Interactive document picker."""
    from knowledge_sync.cli.browser import run_browser

    asyncio.run(run_browser(connection_id, _resolve_host(host)))


if __name__ == "__main__":
    app()
