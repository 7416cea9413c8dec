"""
CLI for blobfs.

Commands:
    blobfs init - Create the record store
    blobfs mknode NAME - Create a file or directory node
    blobfs write ID [SOURCE] - Write bytes into a file node
    blobfs cat ID - Print a file node's bytes
    blobfs stat ID - Show node metadata
    blobfs blocks ID - List persisted block indices
    blobfs config - Show current configuration
    blobfs version - Print version
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Annotated, Awaitable, Callable, Optional, TypeVar

import click
import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from blobfs import __version__
from blobfs.config import Settings, clear_settings_cache, get_settings
from blobfs.exceptions import BlobFSError
from blobfs.fs import BlobFS
from blobfs.logging import setup_logging
from blobfs.types import NodeMeta, NodeType, generate_id

T = TypeVar("T")

app = typer.Typer(
    name="blobfs",
    help="Chunked blob storage with random-access cursors",
    no_args_is_help=True,
)

console = Console()
error_console = Console(stderr=True)


def _get_settings_safe() -> Settings | None:
    """Get settings, returning None if configuration is invalid."""
    try:
        clear_settings_cache()
        return get_settings()
    except Exception:
        return None


def _load_settings() -> Settings:
    settings = _get_settings_safe()
    if settings is None:
        error_console.print(
            "[red]Error:[/red] Configuration is invalid. "
            "Run 'blobfs config' to see what's wrong."
        )
        raise typer.Exit(1)
    setup_logging(settings.LOG_LEVEL, settings.LOG_FILE)
    return settings


def _run(settings: Settings, action: Callable[[BlobFS], Awaitable[T]]) -> T:
    """Run ``action(fs)`` against an initialized BlobFS, reporting blobfs errors."""

    async def runner() -> T:
        async with BlobFS.from_settings(settings) as fs:
            return await action(fs)

    try:
        return asyncio.run(runner())
    except BlobFSError as e:
        error_console.print(f"[red]Error:[/red] {escape(str(e))}")
        raise typer.Exit(1)


def _node_table(meta: NodeMeta) -> Table:
    table = Table(title=f"Node {meta.node_id}", show_header=True)
    table.add_column("Field", style="cyan")
    table.add_column("Value", style="green")
    table.add_row("name", meta.name)
    table.add_row("type", meta.type.value)
    table.add_row("size", str(meta.size))
    table.add_row("block_size", str(meta.block_size))
    table.add_row("blocks", str(meta.block_count))
    table.add_row("parent", meta.parent or "[dim]none[/dim]")
    table.add_row("creation", meta.creation.isoformat())
    table.add_row("access", meta.access.isoformat())
    return table


@app.command()
def init() -> None:
    """Create the record store and record its default block size."""
    settings = _load_settings()

    async def action(fs: BlobFS) -> int:
        return fs.block_size

    block_size = _run(settings, action)
    console.print(f"Initialized [bold]{settings.DB_PATH}[/bold] (block size {block_size})")


@app.command()
def mknode(
    name: Annotated[str, typer.Argument(help="Node name")],
    node_id: Annotated[
        Optional[str],
        typer.Option("--id", help="Node id (generated when omitted)"),
    ] = None,
    directory: Annotated[
        bool,
        typer.Option("--dir", "-d", help="Create a directory instead of a file"),
    ] = False,
    parent: Annotated[
        Optional[str],
        typer.Option("--parent", "-p", help="Parent directory id"),
    ] = None,
    block_size: Annotated[
        Optional[int],
        typer.Option("--block-size", "-b", help="Block size in bytes"),
    ] = None,
) -> None:
    """Create a file or directory node."""
    settings = _load_settings()
    node_id = node_id or generate_id("node")
    node_type = NodeType.DIRECTORY if directory else NodeType.FILE

    async def action(fs: BlobFS) -> NodeMeta:
        return await fs.create_node(
            node_id, name, node_type, parent=parent, block_size=block_size
        )

    meta = _run(settings, action)
    console.print(meta.node_id)


@app.command()
def write(
    node_id: Annotated[str, typer.Argument(help="File node id")],
    source: Annotated[
        Optional[Path],
        typer.Argument(help="File to copy from (stdin when omitted)"),
    ] = None,
    text: Annotated[
        Optional[str],
        typer.Option("--text", "-t", help="Write this UTF-8 text instead of a file"),
    ] = None,
    position: Annotated[
        Optional[int],
        typer.Option("--position", help="Byte position (appends when omitted)"),
    ] = None,
) -> None:
    """Write bytes into a file node."""
    settings = _load_settings()

    if text is not None:
        data = text.encode("utf-8")
    elif source is not None:
        data = source.read_bytes()
    else:
        data = click.get_binary_stream("stdin").read()

    async def action(fs: BlobFS) -> int:
        return await fs.write_at(node_id, data, position=position)

    written = _run(settings, action)
    console.print(f"Wrote {written} bytes to {node_id}")


@app.command()
def cat(
    node_id: Annotated[str, typer.Argument(help="File node id")],
    offset: Annotated[int, typer.Option("--offset", help="Start position")] = 0,
    length: Annotated[
        Optional[int],
        typer.Option("--length", "-n", help="Maximum bytes to print"),
    ] = None,
) -> None:
    """Print a file node's bytes to stdout."""
    settings = _load_settings()

    async def action(fs: BlobFS) -> bytes:
        async with fs.node_lock(node_id):
            async with await fs.open(node_id) as cursor:
                await cursor.seek(offset)
                return await cursor.read_bytes(length)

    data = _run(settings, action)
    typer.echo(data, nl=False)


@app.command()
def stat(node_id: Annotated[str, typer.Argument(help="Node id")]) -> None:
    """Show a node's metadata."""
    settings = _load_settings()

    async def action(fs: BlobFS) -> NodeMeta:
        return await fs.get_node(node_id)

    console.print(_node_table(_run(settings, action)))


@app.command()
def blocks(node_id: Annotated[str, typer.Argument(help="File node id")]) -> None:
    """List the persisted block indices of a node."""
    settings = _load_settings()

    async def action(fs: BlobFS) -> list[int]:
        return await fs.block_indices(node_id)

    indices = _run(settings, action)
    console.print(" ".join(str(i) for i in indices) if indices else "[dim]no blocks[/dim]")


@app.command()
def config() -> None:
    """Show current configuration."""
    settings = _get_settings_safe()

    if settings is None:
        error_console.print("[red]Configuration is invalid.[/red]")
        error_console.print()
        error_console.print("Check the BLOBFS_* environment variables:")
        error_console.print("  - BLOBFS_BLOCK_SIZE (1 to 16777216)")
        error_console.print("  - BLOBFS_TABLE_NAME (plain SQL identifier)")
        error_console.print("  - BLOBFS_LOG_LEVEL (DEBUG, INFO, WARNING, ERROR, CRITICAL)")
        raise typer.Exit(1)

    table = Table(title="Settings", show_header=True)
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="green")

    for key, value in settings.redacted_display().items():
        display_value = str(value) if value is not None else "[dim]not set[/dim]"
        table.add_row(key, display_value)

    console.print(table)


@app.command()
def version() -> None:
    """Print version."""
    console.print(f"blobfs {__version__}")


def main() -> None:
    app()


if __name__ == "__main__":
    main()
