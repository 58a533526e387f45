"""Command-line interface for clau.

Sends one query to the Claude Code CLI and prints the answer.
"""

import sys
from pathlib import Path
from typing import Any, Optional

import anyio
import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from clau import __version__
from clau._errors import ClauError
from clau.client import ClauClient
from clau.config import ClauConfig, StreamFormat
from clau.types import (
    AssistantMessage,
    Response,
    ResultMessage,
    SystemMessage,
    ToolMessage,
    ToolResultMessage,
)
from clau.utils.log import get_logger, init_logger

console = Console()
logger = get_logger()


def build_client(config: ClauConfig) -> ClauClient:
    """Create the client used by the command."""
    return ClauClient(config)


def _metadata_table(response: Response) -> Optional[Table]:
    metadata = response.metadata
    if metadata is None:
        return None
    table = Table(title="Metadata", show_header=False)
    table.add_column("Field", style="bold")
    table.add_column("Value")
    table.add_row("Session", metadata.session_id)
    if metadata.model:
        table.add_row("Model", metadata.model)
    if metadata.cost_usd is not None:
        table.add_row("Cost (USD)", f"{metadata.cost_usd:.6f}")
    if metadata.duration_ms is not None:
        table.add_row("Duration (ms)", str(metadata.duration_ms))
    usage = metadata.tokens_used
    if usage is not None:
        for label, value in (
            ("Input tokens", usage.input_tokens),
            ("Output tokens", usage.output_tokens),
            ("Cache creation tokens", usage.cache_creation_input_tokens),
            ("Cache read tokens", usage.cache_read_input_tokens),
        ):
            if value is not None:
                table.add_row(label, str(value))
    return table


def _stats_table(message: ResultMessage) -> Table:
    stats = message.stats
    table = Table(title="Conversation", show_header=False)
    table.add_column("Field", style="bold")
    table.add_column("Value")
    table.add_row("Session", message.meta.session_id)
    table.add_row("Messages", str(stats.total_messages))
    table.add_row("Cost (USD)", f"{stats.total_cost_usd:.6f}")
    table.add_row("Duration (ms)", str(stats.total_duration_ms))
    table.add_row("Tokens", str(stats.total_tokens.total))
    return table


async def run_query(
    client: ClauClient,
    query: str,
    raw: bool = False,
    show_metadata: bool = False,
) -> None:
    """Run a single query and print the response."""
    logger.info(
        "[cli] Running single query",
        extra={"format": client.config.stream_format.value, "query_length": len(query)},
    )
    response = await client.send_full(query)
    console.print(response.content, markup=False, highlight=False)

    if show_metadata:
        table = _metadata_table(response)
        if table is not None:
            console.print(table)
        else:
            console.print("[dim]No metadata available for this format[/dim]")
    if raw and response.raw_payload is not None:
        console.print_json(data=response.raw_payload)


async def stream_query(
    client: ClauClient,
    query: str,
    verbose: bool = False,
    show_metadata: bool = False,
) -> None:
    """Run a query and print messages as they arrive."""
    async with client.query(query).stream(incremental=True) as stream:
        async for message in stream:
            if isinstance(message, AssistantMessage):
                console.print(message.content, markup=False, highlight=False)
            elif isinstance(message, ToolMessage):
                console.print(f"[dim]Tool: {escape(message.name)}[/dim]")
            elif isinstance(message, ToolResultMessage):
                if verbose:
                    console.print(f"[dim]Tool result: {escape(message.tool_name)}[/dim]")
            elif isinstance(message, SystemMessage):
                if verbose:
                    console.print(f"[dim]System: {escape(message.content)}[/dim]")
            elif isinstance(message, ResultMessage) and show_metadata:
                console.print(_stats_table(message))


@click.command()
@click.version_option(version=__version__)
@click.option(
    "--format",
    "stream_format",
    type=click.Choice([fmt.value for fmt in StreamFormat]),
    default=None,
    help="Output format requested from the claude binary",
)
@click.option("--model", type=str, default=None, help="Model name")
@click.option("--system-prompt", type=str, default=None, help="System prompt")
@click.option(
    "--mcp-config",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="MCP configuration file",
)
@click.option(
    "--allowed-tool",
    "allowed_tools",
    multiple=True,
    help="Tool permission to grant (repeatable), e.g. mcp__server__tool or bash:ls",
)
@click.option("--max-tokens", type=click.IntRange(min=1), default=None, help="Maximum output tokens")
@click.option("--timeout", "timeout_secs", type=float, default=None, help="Timeout in seconds")
@click.option("--verbose", is_flag=True, help="Verbose output")
@click.option("--cli-path", type=str, default=None, help="Explicit path to the claude binary")
@click.option("--stream", "stream", is_flag=True, help="Print messages as they arrive")
@click.option("--raw", is_flag=True, help="Print the raw decoded payload")
@click.option("--show-metadata", is_flag=True, help="Print response metadata")
@click.option(
    "--log-file",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Write debug logs to this file",
)
@click.argument("query")
def cli(
    stream_format: Optional[str],
    model: Optional[str],
    system_prompt: Optional[str],
    mcp_config: Optional[Path],
    allowed_tools: tuple[str, ...],
    max_tokens: Optional[int],
    timeout_secs: Optional[float],
    verbose: bool,
    cli_path: Optional[str],
    stream: bool,
    raw: bool,
    show_metadata: bool,
    log_file: Optional[Path],
    query: str,
) -> None:
    """Send QUERY to Claude Code and print the answer."""
    if log_file is not None:
        init_logger(log_file)

    overrides: dict[str, Any] = {
        "stream_format": stream_format,
        "model": model,
        "system_prompt": system_prompt,
        "mcp_config_path": mcp_config,
        "allowed_tools": allowed_tools or None,
        "max_tokens": max_tokens,
        "timeout_secs": timeout_secs,
        "cli_path": cli_path,
    }
    overrides = {key: value for key, value in overrides.items() if value is not None}
    if verbose:
        overrides["verbose"] = True

    try:
        config = ClauConfig.from_env(**overrides)
        client = build_client(config)
        if stream:
            anyio.run(stream_query, client, query, verbose, show_metadata)
        else:
            anyio.run(run_query, client, query, raw, show_metadata)
    except ClauError as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        logger.warning(
            "[cli] Query failed: %s: %s",
            type(e).__name__,
            e,
        )
        sys.exit(1)


def main() -> None:
    """Main entry point."""
    try:
        cli()
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted[/yellow]")
        sys.exit(130)


if __name__ == "__main__":
    main()
