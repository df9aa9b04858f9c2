"""
QueueWatch CLI
==============

Command-line interface for inspecting Redis job queues.

Commands:
    queuewatch list                               - Summarize all queues
    queuewatch show <name>                        - Counts for one queue
    queuewatch items <name> [channel]             - List jobs in a channel
    queuewatch remove <name> <channel> <value>    - Remove one job
"""

import logging
from pathlib import Path
from typing import Optional

import click
import redis
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table
import yaml

from queuewatch import __version__
from queuewatch.queues import (
    CHANNELS,
    JobPayload,
    QueueNotFoundError,
    QueueSummary,
    UnsupportedStructureError,
    create_queue_repository,
)


console = Console()
logger = logging.getLogger("queuewatch")

PAYLOAD_PREVIEW = 60


def load_config(config_path: Optional[str] = None) -> dict:
    """Load configuration from config.yaml"""
    path = Path(config_path) if config_path else Path("config.yaml")
    if path.exists():
        with open(path) as f:
            return yaml.safe_load(f) or {}
    return {}


def setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def _repository(ctx: click.Context):
    config = ctx.obj["config"]
    queue_config = config.get("queues", {})
    logger.debug(
        "Connecting to %s (namespace %s)",
        queue_config.get("redis_url", "default"),
        queue_config.get("namespace", "default"),
    )
    return create_queue_repository(config)


@click.group()
@click.version_option(version=__version__, prog_name="QueueWatch")
@click.option(
    "--config", "-c", "config_path",
    default=None,
    help="Path to a YAML config file (default: ./config.yaml)"
)
@click.option("--redis-url", default=None, help="Redis URL, overrides the config file")
@click.option("--namespace", "-n", default=None, help="Queue namespace, overrides the config file")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.pass_context
def main(ctx: click.Context, config_path: str, redis_url: str, namespace: str, verbose: bool):
    """QueueWatch - Redis Job Queue Inspector"""
    setup_logging(verbose)

    config = load_config(config_path)
    queue_config = config.setdefault("queues", {}) or {}
    config["queues"] = queue_config

    if redis_url:
        queue_config["redis_url"] = redis_url
    if namespace:
        queue_config["namespace"] = namespace

    ctx.obj = {"config": config}


@main.command("list")
@click.pass_context
def list_queues(ctx: click.Context):
    """Summarize every queue in the namespace."""
    repository = _repository(ctx)

    try:
        queues = repository.discover_all()
    except redis.exceptions.RedisError as e:
        _fail(f"Redis error: {e}")

    if not queues:
        console.print(f"[dim]No queues found under '{repository.namespace}'[/dim]")
        return

    table = Table(title=f"Queues ({repository.namespace})")
    table.add_column("Queue")
    table.add_column("Queued", justify="right")
    table.add_column("Delayed", justify="right")
    table.add_column("Reserved", justify="right")

    for name, summary in queues.items():
        table.add_row(
            escape(name),
            str(summary.queued),
            str(summary.delayed),
            str(summary.reserved),
        )

    console.print(table)


@main.command()
@click.argument("name")
@click.pass_context
def show(ctx: click.Context, name: str):
    """Show channel counts for one queue."""
    repository = _repository(ctx)

    try:
        summary = repository.summarize(name)
    except redis.exceptions.RedisError as e:
        _fail(f"Redis error: {e}")

    console.print(f"\n[bold blue]Queue[/bold blue] {escape(name)}\n")
    console.print(_summary_table(summary))


@main.command()
@click.argument("name")
@click.argument("channel", type=click.Choice(CHANNELS), default="queued")
@click.option("--raw", is_flag=True, help="Print raw payloads, one per line")
@click.pass_context
def items(ctx: click.Context, name: str, channel: str, raw: bool):
    """List the jobs held in a queue channel."""
    repository = _repository(ctx)

    try:
        payloads = repository.list_items(name, channel)
    except QueueNotFoundError as e:
        _fail(f"Queue not found: {e.key}")
    except UnsupportedStructureError as e:
        _fail(str(e))
    except redis.exceptions.RedisError as e:
        _fail(f"Redis error: {e}")

    if raw:
        for payload in payloads:
            click.echo(payload)
        return

    if not payloads:
        console.print(f"[dim]{escape(name)}:{channel} is empty[/dim]")
        return

    table = Table(title=f"{name} ({channel})")
    table.add_column("#", justify="right")
    table.add_column("Job")
    table.add_column("Attempts", justify="right")
    table.add_column("Payload")

    for position, payload in enumerate(payloads):
        job = JobPayload.from_raw(payload)
        table.add_row(
            str(position),
            escape(job.job or "N/A"),
            str(job.attempts) if job.attempts is not None else "-",
            escape(_preview(job.raw)),
        )

    console.print(table)


@main.command(context_settings={"ignore_unknown_options": True})
@click.argument("name")
@click.argument("channel", type=click.Choice(CHANNELS))
@click.argument("value", type=str)
@click.option("--yes", "-y", is_flag=True, help="Do not ask for confirmation")
@click.pass_context
def remove(ctx: click.Context, name: str, channel: str, value: str, yes: bool):
    """
    Remove one job from a queue channel.

    VALUE is the list index for the queued channel (negative indexes count
    from the tail) and the exact payload for delayed and reserved.
    """
    if channel == "queued":
        try:
            int(value)
        except ValueError:
            _fail(f"Index expected for the queued channel, got: {value}")

    if not yes:
        click.confirm(f"Remove {_preview(value)} from {name}:{channel}?", abort=True)

    repository = _repository(ctx)
    key = repository.channel_key(name, channel)

    try:
        if not repository.exists(key):
            _fail(f"Queue not found: {key}")
        removed = repository.remove_item(name, channel, value)
    except UnsupportedStructureError as e:
        _fail(str(e))
    except redis.exceptions.RedisError as e:
        _fail(f"Redis error: {e}")

    if removed:
        logger.info("Removed %s from %s:%s", value, name, channel)
        console.print("[green]✓ Job removed[/green]")
    else:
        console.print(f"[yellow]Nothing removed from {escape(name)}:{channel}[/yellow]")


def _summary_table(summary: QueueSummary) -> Table:
    table = Table(show_header=False, box=None)
    table.add_column("Channel", style="dim")
    table.add_column("Count", justify="right")

    for channel, count in summary.to_dict().items():
        table.add_row(channel.capitalize(), str(count))
    table.add_row("Total", f"[bold]{summary.total}[/bold]")

    return table


def _preview(payload: str) -> str:
    if len(payload) <= PAYLOAD_PREVIEW:
        return payload
    return payload[: PAYLOAD_PREVIEW - 3] + "..."


def _fail(message: str) -> None:
    console.print(f"[red]{escape(message)}[/red]")
    raise SystemExit(1)


if __name__ == "__main__":
    main()
