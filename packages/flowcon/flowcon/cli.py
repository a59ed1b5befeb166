"""FlowCon CLI: run memory capture from a workflow step.

Commands:
    flowcon capture TRANSCRIPT --repo OWNER/NAME --pr N
    flowcon extract FILE          Print memories found in a text file (- for stdin)
    flowcon prompt                Print the memory prompt given to the assistant
    flowcon status                Show configuration and whether capture is on
"""

from __future__ import annotations

import asyncio
import json
import logging

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from flowcon import __version__
from flowcon.capture import capture_memories
from flowcon.config import FlowConConfig
from flowcon.errors import ConfigError
from flowcon.extractor import extract_memories
from flowcon.models import CaptureContext
from flowcon.prompt import get_memory_prompt
from flowcon.transcript import load_transcript
from flowcon.utils import get_logger, mask_secret

console = Console()


def _load_config() -> FlowConConfig:
    try:
        return FlowConConfig.load()
    except ConfigError as exc:
        console.print(f"[red]{escape(str(exc))}[/red]")
        if exc.detail:
            console.print(f"[dim]{escape(exc.detail)}[/dim]")
        raise SystemExit(1)


@click.group()
@click.version_option(__version__, prog_name="flowcon")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging.")
def cli(verbose):
    """FlowCon: long-term memory capture for PR assistants."""
    logging.getLogger("flowcon").setLevel(logging.DEBUG if verbose else logging.INFO)


@cli.command()
@click.argument("transcript", type=click.Path(exists=True, dir_okay=False))
@click.option("--repo", "repository", required=True, help="Repository as OWNER/NAME.")
@click.option("--pr", "pr_number", required=True, help="Pull request or issue number.")
def capture(transcript, repository, pr_number):
    """Send memories from an execution transcript to FlowCon."""
    try:
        context = CaptureContext.from_repository(repository, pr_number)
    except ValueError as exc:
        raise click.BadParameter(str(exc), param_hint="--repo")

    try:
        config = FlowConConfig.load()
    except ConfigError as exc:
        console.print(f"[yellow]{escape(str(exc))}, skipping memory capture.[/yellow]")
        return
    if not config.enabled:
        console.print(
            f"[dim]FlowCon not configured ({', '.join(config.missing())} unset), skipping.[/dim]"
        )
        return

    try:
        messages = load_transcript(transcript)
    except (OSError, UnicodeDecodeError) as exc:
        console.print(f"[yellow]Cannot read transcript ({escape(str(exc))}), skipping memory capture.[/yellow]")
        return
    asyncio.run(capture_memories(messages, context, config))


@cli.command()
@click.argument("source", type=click.File("r", encoding="utf-8"), default="-")
def extract(source):
    """Print memories found in a text file as JSON."""
    memories = extract_memories(source.read())
    click.echo(json.dumps([m.to_payload() for m in memories], indent=2, ensure_ascii=False))


@cli.command()
def prompt():
    """Print the memory-extraction prompt."""
    click.echo(get_memory_prompt(_load_config()))


@cli.command()
def status():
    """Show FlowCon configuration."""
    config = _load_config()

    table = Table(title="FlowCon", show_header=True, header_style="bold")
    table.add_column("Setting", style="cyan")
    table.add_column("Value")
    table.add_row("config file", str(config.path) if config.path.exists() else "[dim]none[/dim]")
    table.add_row("FLOWCON_SERVER", config.server_url or "[dim]unset[/dim]")
    table.add_row("FLOWCON_PAT", mask_secret(config.pat) or "[dim]unset[/dim]")
    table.add_row("FLOWCON_GROUP_ID", config.group_id or "[dim]unset[/dim]")
    table.add_row("FLOWCON_MEMORY_PROMPT", "custom" if config.memory_prompt else "default")
    table.add_row("timeout", f"{config.timeout:g}s")
    console.print(table)

    if config.enabled:
        console.print("[green]Memory capture enabled.[/green]")
    else:
        console.print(f"[yellow]Memory capture disabled:[/yellow] {', '.join(config.missing())} unset")


def main():
    get_logger("flowcon")
    cli()


if __name__ == "__main__":
    main()
