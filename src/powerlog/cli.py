"""Command-line interface for PowerLog."""

import asyncio
import csv
import json
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any

import click
from rich.console import Console
from rich.table import Table

from powerlog.config.settings import Settings
from powerlog.core.inventory import InventoryService, SyncFailure, sort_batteries
from powerlog.core.models import Battery, BatteryCategory
from powerlog.utils.exceptions import ConfigurationError, InventoryValidationError

console = Console()

CATEGORY_LABELS = {
    "en": {
        BatteryCategory.PRIMARY: "Battery",
        BatteryCategory.BUTTON_CELL: "Button cell",
        BatteryCategory.RECHARGEABLE: "Rechargeable",
    },
    "de": {
        BatteryCategory.PRIMARY: "Batterie",
        BatteryCategory.BUTTON_CELL: "Knopfzelle",
        BatteryCategory.RECHARGEABLE: "Akku",
    },
}

SORT_FIELDS = [
    "category",
    "name",
    "brand",
    "size",
    "quantity",
    "total_quantity",
    "min_quantity",
    "in_use",
    "charge_cycles",
    "last_charged",
]

CATEGORY_CHOICE = click.Choice([c.value for c in BatteryCategory])


def run_async(coro):
    """Run an async coroutine, exiting on configuration errors."""
    try:
        return asyncio.run(coro)
    except ConfigurationError as e:
        console.print(f"[red]Configuration error:[/red] {e}")
        raise SystemExit(1) from None


def load_settings(config_path: str | None = None) -> Settings:
    """Load and validate settings.

    Args:
        config_path: Optional path to .env file.

    Returns:
        Validated Settings object.
    """
    from powerlog.config.logging import configure_logging
    from powerlog.config.settings import get_settings

    try:
        if config_path:
            settings = Settings(_env_file=config_path)
        else:
            # Clear cached settings to pick up environment changes
            get_settings.cache_clear()
            settings = get_settings()
        configure_logging(settings)
        return settings
    except Exception as e:
        console.print(f"[red]Configuration error:[/red] {e}")
        console.print("\n[yellow]Hint:[/yellow] Settings are read from POWERLOG_* variables or a .env file.")
        raise SystemExit(1) from None


def report_sync_failure(failure: SyncFailure) -> None:
    """Tell the user a change was kept locally but not saved."""
    console.print(
        f"[yellow]Warning:[/yellow] {failure.operation} of {failure.battery_id} was not saved "
        f"({failure.error}). The change is kept in the local cache."
    )


@asynccontextmanager
async def open_service(settings: Settings) -> AsyncIterator[InventoryService]:
    """Build the inventory service for the configured backend and load it.

    Pending writes are flushed when the block exits.
    """
    from sqlalchemy.exc import SQLAlchemyError

    from powerlog.config.logging import OperationTimer, get_logger
    from powerlog.core.cache import LocalCache
    from powerlog.db.engine import create_engine, create_tables
    from powerlog.storage.database import DatabaseStore
    from powerlog.storage.remote import RemoteStore

    logger = get_logger(__name__)
    cache = LocalCache(settings.get_cache_path())

    async def _run(store):
        service = InventoryService(
            store,
            cache,
            strict=settings.strict_stock_invariant,
            on_sync_error=report_sync_failure,
        )
        with OperationTimer("inventory load", logger, store=store.name):
            await service.load()
        if service.offline:
            console.print(f"[yellow]Storage ({store.name}) unreachable, working on the local cache.[/yellow]")
        return service

    if settings.storage_backend == "api":
        async with RemoteStore(settings) as store:
            service = await _run(store)
            try:
                yield service
            finally:
                await service.flush()
        return

    engine = create_engine(settings)
    try:
        try:
            create_tables(engine)
        except SQLAlchemyError as e:
            logger.warning("Could not create tables", error=str(e))
        service = await _run(DatabaseStore(engine))
        try:
            yield service
        finally:
            await service.flush()
    finally:
        engine.dispose()


def category_label(settings: Settings, category: BatteryCategory) -> str:
    return CATEGORY_LABELS[settings.language][category]


def format_timestamp(value: datetime | None) -> str:
    return value.astimezone().strftime("%Y-%m-%d %H:%M") if value else "-"


def battery_table(settings: Settings, batteries: list[Battery], title: str = "Batteries") -> Table:
    """Render batteries as a rich table."""
    table = Table(title=title)
    table.add_column("ID", style="cyan", no_wrap=True)
    table.add_column("Name", style="green")
    table.add_column("Brand")
    table.add_column("Size")
    table.add_column("Category")
    table.add_column("Ready", justify="right")
    table.add_column("Total", justify="right")
    table.add_column("In use", justify="right")
    table.add_column("Cycles")

    for battery in batteries:
        ready_style = "red" if battery.is_low_stock else "green"
        if battery.is_rechargeable:
            cycles = f"{battery.charge_cycles} ({battery.cycle_progress:.0%})"
            in_use = str(battery.in_use)
        else:
            cycles = "-"
            in_use = "-"
        table.add_row(
            battery.id,
            battery.name,
            battery.brand or "-",
            battery.size or "-",
            category_label(settings, battery.category),
            f"[{ready_style}]{battery.quantity}[/{ready_style}]",
            str(battery.total_quantity),
            in_use,
            cycles,
        )
    return table


def fail(message: str) -> None:
    console.print(f"[red]{message}[/red]")
    raise SystemExit(1)


@click.group()
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=True),
    help="Path to .env configuration file",
)
@click.pass_context
def cli(ctx: click.Context, config: str | None) -> None:
    """PowerLog - keep track of batteries, usage and recharges."""
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config


@cli.command()
@click.pass_context
def init_db(ctx: click.Context) -> None:
    """Initialize the database schema."""
    from powerlog.config.logging import get_logger
    from powerlog.db.engine import create_engine, create_tables

    settings = load_settings(ctx.obj.get("config_path"))
    logger = get_logger(__name__)

    console.print("[bold]Initializing database...[/bold]")

    try:
        engine = create_engine(settings)
        create_tables(engine)
        engine.dispose()
        console.print("[green]Database initialized successfully![/green]")
        logger.info("Database initialized", url=settings.database_url)
    except Exception as e:
        console.print(f"[red]Failed to initialize database:[/red] {e}")
        logger.error("Database initialization failed", error=str(e))
        raise SystemExit(1) from None


@cli.command("list")
@click.option("--category", type=CATEGORY_CHOICE, help="Only show one category")
@click.option("--sort", "sort_key", type=click.Choice(SORT_FIELDS), default="category", help="Sort column")
@click.option("--desc", is_flag=True, help="Sort descending")
@click.option("--low", is_flag=True, help="Only show batteries at or below their minimum")
@click.pass_context
def list_batteries(ctx: click.Context, category: str | None, sort_key: str, desc: bool, low: bool) -> None:
    """List the inventory."""
    settings = load_settings(ctx.obj.get("config_path"))

    async def _list():
        async with open_service(settings) as service:
            return service.list_batteries(BatteryCategory(category) if category else None)

    batteries = sort_batteries(run_async(_list()), key=sort_key, descending=desc)
    if low:
        batteries = [b for b in batteries if b.is_low_stock]

    if not batteries:
        console.print("[yellow]No batteries found.[/yellow]")
        return

    console.print(battery_table(settings, batteries))


@cli.command()
@click.argument("battery_id")
@click.pass_context
def show(ctx: click.Context, battery_id: str) -> None:
    """Show all details of one battery."""
    settings = load_settings(ctx.obj.get("config_path"))

    async def _show():
        async with open_service(settings) as service:
            return service.get(battery_id)

    battery = run_async(_show())
    if battery is None:
        console.print(f"[yellow]Battery {battery_id} not found.[/yellow]")
        return

    table = Table(title=battery.name, show_header=False)
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    table.add_row("ID", battery.id)
    table.add_row("Brand", battery.brand or "-")
    table.add_row("Size", battery.size or "-")
    table.add_row("Category", category_label(settings, battery.category))
    table.add_row("Ready", str(battery.quantity))
    table.add_row("Total", str(battery.total_quantity))
    table.add_row("Minimum", str(battery.min_quantity))
    if battery.is_rechargeable:
        table.add_row("In use", str(battery.in_use))
        table.add_row("Capacity (mAh)", str(battery.capacity_mah) if battery.capacity_mah else "-")
        table.add_row("Charge cycles", str(battery.charge_cycles))
        table.add_row("Cycle progress", f"{battery.usage_accumulator}/{battery.batch_size}")
        table.add_row("Last charged", format_timestamp(battery.last_charged))
        table.add_row("Recharges logged", str(len(battery.charging_history)))
    console.print(table)


def battery_options(func):
    """Shared options of ``add`` and ``edit``."""
    options = [
        click.option("--name", help="Display name"),
        click.option("--brand", help="Manufacturer"),
        click.option("--size", help="Size code, e.g. AA or CR2032 (defaults to the name)"),
        click.option("--category", type=CATEGORY_CHOICE, help="Battery category"),
        click.option("--quantity", type=click.IntRange(min=0), help="Units ready for use"),
        click.option("--total", "total_quantity", type=click.IntRange(min=0), help="Units owned (rechargeable)"),
        click.option("--min", "min_quantity", type=click.IntRange(min=0), help="Reorder threshold"),
        click.option("--in-use", "in_use", type=click.IntRange(min=0), help="Units in devices (rechargeable)"),
        click.option("--capacity", "capacity_mah", type=click.IntRange(min=0), help="Capacity in mAh (rechargeable)"),
        click.option("--cycles", "charge_cycles", type=click.IntRange(min=0), help="Charge cycles so far (rechargeable)"),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def save_battery(settings: Settings, payload: dict[str, Any], battery_id: str | None = None) -> Battery | None:
    """Upsert a payload, merging it over the stored battery when editing."""

    async def _save():
        async with open_service(settings) as service:
            data = dict(payload)
            if battery_id is not None:
                existing = service.get(battery_id)
                if existing is None:
                    return None
                data = {**existing.to_payload(), **data}
            return await service.upsert(data)

    try:
        return run_async(_save())
    except InventoryValidationError as e:
        fail(f"Invalid battery: {e}")
        return None


@cli.command()
@battery_options
@click.option("--id", "battery_id", help="Use this id instead of a generated one")
@click.pass_context
def add(ctx: click.Context, battery_id: str | None, **fields: Any) -> None:
    """Add a battery type (or replace one with --id)."""
    settings = load_settings(ctx.obj.get("config_path"))

    if not fields.get("name"):
        fail("A name is required (--name).")

    payload = {key: value for key, value in fields.items() if value is not None}
    payload.setdefault("category", BatteryCategory.PRIMARY.value)
    payload.setdefault("quantity", 1)
    payload.setdefault("min_quantity", settings.default_min_quantity)
    if payload["category"] == BatteryCategory.RECHARGEABLE.value:
        payload.setdefault("total_quantity", payload["quantity"] + payload.get("in_use", 0))
    if battery_id:
        payload["id"] = battery_id

    battery = save_battery(settings, payload)
    if battery:
        console.print(f"[green]Saved {battery.name}[/green] ({battery.id})")


@cli.command()
@click.argument("battery_id")
@battery_options
@click.pass_context
def edit(ctx: click.Context, battery_id: str, **fields: Any) -> None:
    """Change fields of an existing battery."""
    settings = load_settings(ctx.obj.get("config_path"))

    payload = {key: value for key, value in fields.items() if value is not None}
    battery = save_battery(settings, payload, battery_id=battery_id)
    if battery is None:
        console.print(f"[yellow]Battery {battery_id} not found.[/yellow]")
        return
    console.print(f"[green]Updated {battery.name}[/green]")


@cli.command()
@click.argument("battery_id")
@click.pass_context
def use(ctx: click.Context, battery_id: str) -> None:
    """Take one unit of a battery into use."""
    settings = load_settings(ctx.obj.get("config_path"))

    async def _use():
        async with open_service(settings) as service:
            before = service.get(battery_id)
            return before, await service.consume(battery_id)

    before, battery = run_async(_use())
    if battery is None:
        console.print(f"[yellow]Battery {battery_id} not found.[/yellow]")
    elif battery is before:
        console.print(f"[yellow]No {battery.name} left to use.[/yellow]")
    else:
        message = f"[green]Used one {battery.name}[/green], {battery.quantity} ready"
        if battery.is_rechargeable:
            message += f", {battery.in_use} in use, cycle {battery.charge_cycles} at {battery.cycle_progress:.0%}"
        console.print(message)


@cli.command()
@click.argument("battery_id")
@click.option("--amount", "-n", type=int, help="Units recharged (defaults to all in use)")
@click.pass_context
def charge(ctx: click.Context, battery_id: str, amount: int | None) -> None:
    """Log a recharge: move units from in use back to ready."""
    settings = load_settings(ctx.obj.get("config_path"))

    async def _charge():
        async with open_service(settings) as service:
            battery = service.get(battery_id)
            if battery is None:
                return None
            if not battery.is_rechargeable:
                return battery
            return await service.recharge(battery_id, amount if amount is not None else max(battery.in_use, 1))

    try:
        battery = run_async(_charge())
    except InventoryValidationError as e:
        fail(str(e))
        return

    if battery is None:
        console.print(f"[yellow]Battery {battery_id} not found.[/yellow]")
    elif not battery.is_rechargeable:
        console.print(f"[yellow]{battery.name} is not rechargeable.[/yellow]")
    else:
        moved = battery.charging_history[0].count if battery.charging_history else 0
        console.print(f"[green]Recharged {moved} x {battery.name}[/green], {battery.quantity} ready, {battery.in_use} in use")


@cli.command()
@click.argument("battery_id")
@click.pass_context
def history(ctx: click.Context, battery_id: str) -> None:
    """Show the recharge history of a battery, newest first."""
    settings = load_settings(ctx.obj.get("config_path"))

    async def _history():
        async with open_service(settings) as service:
            return service.get(battery_id)

    battery = run_async(_history())
    if battery is None:
        console.print(f"[yellow]Battery {battery_id} not found.[/yellow]")
        return
    if not battery.charging_history:
        console.print(f"[yellow]No recharges logged for {battery.name}.[/yellow]")
        return

    table = Table(title=f"Recharge history: {battery.name}")
    table.add_column("Event ID", style="cyan", no_wrap=True)
    table.add_column("Date")
    table.add_column("Units", justify="right")
    for event in battery.charging_history:
        table.add_row(event.id, format_timestamp(event.date), str(event.count))
    console.print(table)


@cli.command("remove-event")
@click.argument("battery_id")
@click.argument("event_id")
@click.pass_context
def remove_event(ctx: click.Context, battery_id: str, event_id: str) -> None:
    """Delete one recharge history entry (counters are not changed)."""
    settings = load_settings(ctx.obj.get("config_path"))

    async def _remove():
        async with open_service(settings) as service:
            before = service.get(battery_id)
            return before, await service.delete_history_entry(battery_id, event_id)

    before, battery = run_async(_remove())
    if battery is None or battery is before:
        console.print("[yellow]History entry not found.[/yellow]")
    else:
        console.print(f"[green]Removed history entry {event_id}[/green]")


@cli.command()
@click.argument("battery_id")
@click.option("--yes", "-y", is_flag=True, help="Don't ask for confirmation")
@click.pass_context
def delete(ctx: click.Context, battery_id: str, yes: bool) -> None:
    """Delete a battery and its history."""
    settings = load_settings(ctx.obj.get("config_path"))

    if not yes:
        click.confirm(f"Delete battery {battery_id}?", abort=True)

    async def _delete():
        async with open_service(settings) as service:
            return await service.delete(battery_id)

    if run_async(_delete()):
        console.print(f"[green]Deleted {battery_id}[/green]")
    else:
        console.print(f"[yellow]Battery {battery_id} not found.[/yellow]")


@cli.command()
@click.pass_context
def summary(ctx: click.Context) -> None:
    """Show inventory totals."""
    settings = load_settings(ctx.obj.get("config_path"))

    async def _summary():
        async with open_service(settings) as service:
            return service.summary()

    result = run_async(_summary())

    table = Table(title="Inventory", show_header=False)
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right")
    table.add_row("Battery types", str(result.types))
    table.add_row("Units owned", str(result.total_units))
    table.add_row("Units ready", str(result.ready_units))
    table.add_row("Units in use", str(result.in_use_units))
    low_style = "red" if result.low_stock else "green"
    table.add_row("Low stock", f"[{low_style}]{result.low_stock}[/{low_style}]")
    console.print(table)


@cli.command()
@click.option("--format", "-f", type=click.Choice(["csv", "json"]), default="json", help="Output format")
@click.option("--output", "-o", type=click.Path(), help="Output file path")
@click.pass_context
def export(ctx: click.Context, format: str, output: str | None) -> None:
    """Export the inventory to a CSV or JSON file."""
    settings = load_settings(ctx.obj.get("config_path"))

    async def _export():
        async with open_service(settings) as service:
            return service.list_batteries()

    data = [battery.to_payload() for battery in run_async(_export())]
    if not data:
        console.print("[yellow]No data to export.[/yellow]")
        return

    if output is None:
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        output = f"powerlog_batteries_{timestamp}.{format}"

    if format == "json":
        with open(output, "w") as f:
            json.dump(data, f, indent=2)
    else:
        # The ledger doesn't fit a CSV cell; keep it as embedded JSON
        for row in data:
            row["chargingHistory"] = json.dumps(row["chargingHistory"])
        with open(output, "w", newline="") as f:
            writer = csv.DictWriter(f, fieldnames=list(data[0].keys()))
            writer.writeheader()
            writer.writerows(data)

    console.print(f"[green]Exported {len(data)} batteries to {output}[/green]")
