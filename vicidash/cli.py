"""vicidash CLI - server, sync pass and one-off VICIdial utilities."""

import asyncio
import json
from pathlib import Path
from typing import Any, Optional

import typer
from rich.console import Console
from rich.table import Table

from .config import settings
from .logging_config import configure_logging
from .vicidial.client import ViciClient
from .vicidial.errors import RemoteError, ViciError
from .vicidial.parser import CAMPAIGN_LIST_COLUMNS, as_rows, parse_delimited, parse_positional

app = typer.Typer(
    name="vicidash",
    help="vicidash - VICIdial dashboard backend",
    no_args_is_help=True,
)
console = Console()


def _write_json(path: Path, payload: Any) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as f:
        json.dump(payload, f, indent=2, ensure_ascii=False, default=str)


def _parse_params(items: list[str]) -> dict[str, str]:
    params: dict[str, str] = {}
    for item in items:
        key, sep, value = item.partition("=")
        if not sep or not key:
            raise typer.BadParameter(f"expected key=value, got {item!r}", param_hint="--param")
        params[key] = value
    return params


@app.command("serve")
def serve(
    port: int = typer.Option(settings.port, "--port", "-p", help="Port to run on"),
    host: str = typer.Option(settings.host, "--host", help="Host to bind to"),
    reload: bool = typer.Option(False, "--reload", help="Reload on code changes"),
):
    """Launch the dashboard API server."""
    import uvicorn

    console.print(f"[bold cyan]Starting vicidash API at http://{host}:{port}[/bold cyan]")
    uvicorn.run("vicidash.app:app", host=host, port=port, reload=reload)


@app.command("sync")
def sync(
    start: Optional[str] = typer.Option(None, "--start", help="Roster window start"),
    end: Optional[str] = typer.Option(None, "--end", help="Roster window end"),
):
    """Run one agent -> campaign reconciliation and database sync."""
    from .database import async_session_factory, engine
    from .deps import get_name_cache
    from .models import Base
    from .sync.sync_engine import SyncRunner

    configure_logging()

    async def _run():
        if "sqlite" in settings.database_url:
            async with engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
        runner = SyncRunner(ViciClient.from_settings, get_name_cache(), async_session_factory, settings)
        try:
            return await runner.run(start, end)
        finally:
            await engine.dispose()

    result = asyncio.run(_run())
    if not result.success:
        console.print(f"[red]Sync failed: {result.error}[/red]")
        raise typer.Exit(1)

    table = Table(title="Agent campaign sync")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="white")
    table.add_row("Agents processed", f"{result.agents_processed}/{result.total_agents}")
    table.add_row("Total campaigns", str(result.total_campaigns))
    db_sync = result.db_sync
    if db_sync and db_sync.stats:
        stats = db_sync.stats
        table.add_row("Agents created / updated", f"{stats.agents_created} / {stats.agents_updated}")
        table.add_row("Campaigns created / updated", f"{stats.campaigns_created} / {stats.campaigns_updated}")
        table.add_row("Relations created / removed", f"{stats.relations_created} / {stats.relations_removed}")
        table.add_row("Agent errors", str(len(stats.errors)))
    if db_sync and not db_sync.success:
        table.add_row("Database sync", f"[red]failed: {db_sync.error}[/red]")
    console.print(table)


@app.command("raw")
def raw(
    function: str = typer.Argument(..., help="VICIdial function, e.g. campaigns_list"),
    param: Optional[list[str]] = typer.Option(None, "--param", "-P", help="Extra query param as key=value"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Output file"),
):
    """Save the raw response body of one VICIdial function call."""
    params = _parse_params(param or [])
    target = output or Path(f"raw_{function}.json")

    async def _call():
        async with ViciClient.from_settings() as vici:
            return await vici.call(function, params)

    try:
        body = asyncio.run(_call())
    except ViciError as e:
        console.print(f"[red]Error: {e.message}[/red]")
        raise typer.Exit(1)

    _write_json(target, {"raw": body})
    console.print(f"[green]Saved raw data -> {target}[/green]")


@app.command("format-campaigns")
def format_campaigns(
    raw_file: Path = typer.Argument(Path("raw_campaigns.json"), help="File saved by `vicidash raw`"),
    output: Path = typer.Argument(Path("formatted_campaigns.json"), help="Output file"),
):
    """Turn a headerless `campaigns_list` dump into campaign records."""
    try:
        payload = json.loads(raw_file.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        console.print(f"[red]Could not read {raw_file}: {e}[/red]")
        raise typer.Exit(1)

    body = payload.get("raw", "") if isinstance(payload, dict) else ""
    campaigns = parse_positional(body, CAMPAIGN_LIST_COLUMNS)
    _write_json(output, campaigns)
    console.print(f"[green]Formatted {len(campaigns)} campaigns -> {output}[/green]")


@app.command("lists")
def lists(
    list_ids: list[str] = typer.Argument(..., help="VICIdial list ids"),
    output: Path = typer.Option(Path("all_lists.json"), "--output", "-o", help="Output file"),
):
    """Fetch `list_info` for each list id in turn; failed lists are skipped."""

    async def _fetch_all() -> list[dict[str, str]]:
        collected: list[dict[str, str]] = []
        async with ViciClient.from_settings() as vici:
            for list_id in list_ids:
                try:
                    body = await vici.call("list_info", {
                        "list_id": list_id, "leads_counts": "Y", "header": "YES",
                    })
                except RemoteError as e:
                    console.print(f"[yellow]Error for list {list_id}: {e.message}[/yellow]")
                    continue
                rows = as_rows(parse_delimited(body))
                if rows:
                    collected.append(rows[0])
        return collected

    all_lists = asyncio.run(_fetch_all())
    _write_json(output, all_lists)
    console.print(f"[green]Saved {len(all_lists)} lists -> {output}[/green]")


@app.command("resolve")
def resolve(
    campaign_ids: list[str] = typer.Argument(..., help="Campaign ids to name"),
    concurrency: int = typer.Option(
        settings.resolve_concurrency, "--concurrency", "-c", help="Lookups in flight"
    ),
):
    """Resolve campaign ids to names through the shared name cache."""
    from .deps import get_name_cache
    from .sync.resolver import CampaignNameResolver

    async def _resolve():
        async with ViciClient.from_settings() as vici:
            resolver = CampaignNameResolver(vici, get_name_cache(), concurrency=concurrency)
            return await resolver.resolve_batch(campaign_ids)

    resolved = asyncio.run(_resolve())

    table = Table(title="Campaign names")
    table.add_column("ID", style="cyan")
    table.add_column("Name", style="white")
    for item in resolved:
        table.add_row(item["id"], item["name"])
    console.print(table)


if __name__ == "__main__":
    app()
