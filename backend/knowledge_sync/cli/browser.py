"""Interactive document picker running the engine on the client side."""

from __future__ import annotations

import asyncio
import shlex

import typer

from knowledge_sync.client.http import RemoteKnowledgeClient, job_from_status
from knowledge_sync.core.errors import KnowledgeSyncError, ListingFetchError
from knowledge_sync.models.entities import DocumentNode
from knowledge_sync.tree.navigation import ProjectedView
from knowledge_sync.tree.presentation import Presentation, syncing_badge, truncation_notice
from knowledge_sync.tree.session import ConnectionSession
from knowledge_sync.tree.subscription import SubscriptionPropagator

HELP = """\
open N|ID      enter a folder        up            parent folder
crumb I        jump to breadcrumb I  root          back to the top
search TEXT    search all titles     search        clear the search
toggle N|ID    (un)subscribe         refresh/retry reload documents
resync         sync again from scratch
quit"""


class DocumentBrowser:
    """Command-driven picker: each command mutates the session, then ``render``."""

    def __init__(
        self,
        connection_id: str,
        client: RemoteKnowledgeClient,
        document_cap: int = 1000,
    ) -> None:
        self.session = ConnectionSession(connection_id)
        self.client = client
        self.propagator = SubscriptionPropagator(client)
        self.document_cap = document_cap
        self.search = ""
        self.is_truncated = False

    async def refresh(self) -> None:
        """Reload status and documents; a failed fetch keeps the old tree."""
        session = self.session
        session.loading = True
        try:
            status = await self.client.sync_status(session.connection_id)
            session.job = job_from_status(status) if status is not None else None
            nodes, self.is_truncated = await self.client.fetch_documents(session.connection_id)
        except ListingFetchError as exc:
            session.fetch_error = str(exc)
        except KnowledgeSyncError as exc:
            session.notify(str(exc))
        else:
            session.fetch_error = None
            session.store.replace(nodes)
        finally:
            session.loading = False

    def view(self) -> ProjectedView:
        return self.session.navigator.view(self.search)

    async def handle(self, line: str) -> bool:
        """Run one command line; returns False when the user quits."""
        try:
            parts = shlex.split(line)
        except ValueError as exc:
            self.session.notify(str(exc))
            return True
        if not parts:
            return True
        command, args = parts[0].lower(), parts[1:]
        navigator = self.session.navigator
        try:
            if command in {"quit", "exit", "q"}:
                return False
            if command == "help":
                self.session.notify(HELP, level="info")
            elif command == "open":
                self.search = ""
                navigator.navigate_to_folder(self._resolve(args).id)
            elif command == "up":
                navigator.navigate_up()
            elif command == "crumb":
                navigator.navigate_to_breadcrumb(int(args[0]))
            elif command == "root":
                navigator.reset()
            elif command == "search":
                self.search = " ".join(args)
            elif command == "toggle":
                await self.propagator.toggle(self.session, self._resolve(args).id)
            elif command in {"refresh", "retry"}:
                await self.refresh()
            elif command == "resync":
                await self._resync()
            else:
                self.session.notify(f"Unknown command {command!r}; type 'help'")
        except (IndexError, KeyError, ValueError) as exc:
            self.session.notify(f"{command}: {exc}")
        return True

    async def _resync(self) -> None:
        try:
            status = await self.client.resync(self.session.connection_id)
        except KnowledgeSyncError as exc:
            self.session.notify(str(exc))
            return
        self.session.store.clear()
        self.session.navigator.reset()
        self.session.fetch_error = None
        self.session.job = job_from_status(status)
        self.is_truncated = False

    def _resolve(self, args: list[str]) -> DocumentNode:
        if not args:
            raise IndexError("missing argument")
        target = args[0]
        if target.isdigit():
            view = self.view()
            items = [*view.folders, *view.files]
            index = int(target) - 1
            if not 0 <= index < len(items):
                raise IndexError(f"no item {target}")
            return items[index]
        node = self.session.store.get(target)
        if node is None:
            raise KeyError(target)
        return node

    def render(self) -> list[str]:
        session = self.session
        lines = [f"== {session.job.integration_name if session.job else session.connection_id} =="]
        badge = syncing_badge(len(session.store), session.status)
        if badge:
            lines.append(f"[{badge}]")
        notice = truncation_notice(self.is_truncated, self.document_cap)
        if notice:
            lines.append(f"*{notice}")
        if self.search:
            lines.append(f"Search: {self.search}")

        presentation = session.presentation()
        if presentation is Presentation.LOADING:
            lines.append("Loading documents...")
        elif presentation is Presentation.SYNCING:
            lines.append("Syncing documents...")
        elif presentation is Presentation.FETCH_ERROR:
            lines.append(f"Error: {session.fetch_error} (type 'retry')")
        elif presentation is Presentation.SYNC_ERROR:
            lines.append("An error occurred during the last sync")
            lines.append(f'"{session.job.sync_error}" (type \'resync\')')
        else:
            lines.extend(self._render_listing())

        for notification in session.drain_notifications():
            lines.append(f"! {notification.message}")
        return lines

    def _render_listing(self) -> list[str]:
        view = self.view()
        lines: list[str] = []
        if view.breadcrumbs:
            lines.append(" > ".join(["Root", *(crumb.title for crumb in view.breadcrumbs)]))
        if view.is_empty:
            lines.append("No items found")
            return lines
        for number, node in enumerate([*view.folders, *view.files], start=1):
            mark = "[x]" if node.is_subscribed else "[ ]"
            suffix = "/" if node.can_have_children else ""
            lines.append(f"{number:>3} {mark} {node.title}{suffix}")
        return lines


async def run_browser(connection_id: str, host: str) -> None:
    async with RemoteKnowledgeClient(host) as client:
        browser = DocumentBrowser(connection_id, client)
        await browser.refresh()
        while True:
            typer.echo("\n".join(browser.render()))
            line = await asyncio.to_thread(typer.prompt, "ksync", default="", show_default=False)
            if not await browser.handle(line):
                break


__all__ = ["DocumentBrowser", "run_browser"]
