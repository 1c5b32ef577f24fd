"""Unified sync CLI - operator entry point."""

from __future__ import annotations

import asyncio
import json
import logging

import typer
from rich.console import Console
from rich.table import Table

from .config import settings
from .providers.base import ObjectKind
from .providers.registry import SYNC_EXCLUSIONS, build_registry

app = typer.Typer(
    name="unified",
    help="Unified CRM / ticketing sync",
    no_args_is_help=True,
)
console = Console()


@app.command("serve")
def serve(
    port: int = typer.Option(8030, "--port", "-p", help="Port to run on"),
    host: str = typer.Option("127.0.0.1", "--host", help="Host to bind to"),
    reload: bool = typer.Option(False, "--reload", help="Reload on code changes"),
):
    """Run the service (health routes + scheduled sweeps)."""
    import uvicorn

    console.print(f"[bold cyan]Starting unified sync at http://{host}:{port}[/bold cyan]")
    uvicorn.run("unified.app:app", host=host, port=port, reload=reload)


@app.command("init-db")
def init_db():
    """Create all tables in the configured database."""
    from .database import create_tables

    asyncio.run(create_tables())
    console.print(f"[green]Tables created[/green] in {settings.database_url}")


@app.command("providers")
def providers(json_output: bool = typer.Option(False, "--json", help="Output JSON")):
    """List every (object kind, provider) binding and whether sweeps visit it."""
    registry = build_registry(settings)
    rows = []
    for kind in ObjectKind:
        excluded = SYNC_EXCLUSIONS.get(kind, frozenset())
        for provider in registry.providers(kind):
            binding = registry.get(kind, provider)
            rows.append({
                "kind": kind.value,
                "provider": provider.value,
                "adapter": type(binding.adapter).__name__,
                "swept": provider not in excluded,
            })

    if json_output:
        typer.echo(json.dumps(rows))
        return

    table = Table(title="Provider bindings")
    table.add_column("Kind", style="cyan")
    table.add_column("Provider")
    table.add_column("Adapter", style="dim")
    table.add_column("Swept")
    for row in rows:
        table.add_row(row["kind"], row["provider"], row["adapter"], "yes" if row["swept"] else "no")
    console.print(table)


@app.command("sync")
def sync(
    kind: ObjectKind = typer.Argument(..., help="Object kind to sweep"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log each pair"),
):
    """Run one sweep for KIND across all active tenants and exit."""
    from .database import async_session_factory, engine
    from .services.webhook_svc import WebhookNotifier
    from .sync.orchestrator import SyncOrchestrator

    logging.basicConfig(level=logging.INFO if verbose else logging.WARNING)

    async def _run():
        notifier = WebhookNotifier(settings)
        orchestrator = SyncOrchestrator(
            build_registry(settings), async_session_factory, notifier=notifier,
        )
        try:
            return await orchestrator.sweep(kind)
        finally:
            await notifier.drain()
            await engine.dispose()

    result = asyncio.run(_run())

    table = Table(title=f"Sweep: {kind.value}")
    table.add_column("Created", justify="right")
    table.add_column("Updated", justify="right")
    table.add_column("Errors", justify="right", style="red")
    table.add_row(str(result.created), str(result.updated), str(result.failed))
    console.print(table)
    for error in result.errors:
        console.print(f"  [red]-[/red] {error}")
    if result.errors:
        raise typer.Exit(1)


if __name__ == "__main__":
    app()
