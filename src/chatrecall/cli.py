"""CLI interface for chatrecall."""

from __future__ import annotations

import json
import logging
import shutil
import sys
from pathlib import Path

import click

from . import __version__
from .cache import ChunkCache
from .config import (
    MAX_BATCH_CHUNKS,
    DataPaths,
    load_service_config,
    resolve_cache_backend,
    resolve_data_dir,
)
from .errors import ChatRecallError
from .library import ImportList


class AppContext:
    def __init__(self, data_dir: Path, backend: str):
        self.paths = DataPaths(data_dir)
        self.backend = backend

    def imports(self) -> ImportList:
        return ImportList(self.paths.imports_path)

    def cache(self) -> ChunkCache:
        return ChunkCache.open(self.paths, self.backend)


pass_app = click.make_pass_decorator(AppContext)


@click.group()
@click.version_option(version=__version__, prog_name="chatrecall")
@click.option(
    "--data-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Data directory (default: $CHATRECALL_DATA_DIR or ~/.chatrecall)",
)
@click.option("-v", "--verbose", is_flag=True, help="Log debug output to stderr")
@click.pass_context
def cli(ctx: click.Context, data_dir: Path | None, verbose: bool):
    """chatrecall — Turn WhatsApp chats into day-by-day memories.

    Import a WhatsApp export, then process it: every day of the chat is sent
    once to the analysis model and the result is cached locally, so reruns
    only pay for days that were never analyzed.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        stream=sys.stderr,
    )
    try:
        backend = resolve_cache_backend()
    except ChatRecallError as e:
        raise click.ClickException(str(e)) from e
    ctx.obj = AppContext(data_dir or resolve_data_dir(), backend)


@cli.command("import")
@click.argument("export_path", type=click.Path(exists=True, dir_okay=False))
@click.option("--name", help="Chat name (default: export file name)")
@click.option("--force", is_flag=True, help="Replace a chat that was already imported")
@pass_app
def import_cmd(app: AppContext, export_path: str, name: str | None, force: bool):
    """Import a WhatsApp chat export (.zip or .txt).

    Example:
        chatrecall import ~/Downloads/"WhatsApp Chat - Family.zip"
    """
    from .importer import import_whatsapp_export

    try:
        chat = import_whatsapp_export(export_path, app.imports(), name=name, force=force)
        if chat is not None and force:
            # Chunk positions may have shifted; old results no longer line up
            app.cache().purge(chat.name)
    except ChatRecallError as e:
        raise click.ClickException(str(e)) from e

    if chat is None:
        click.echo("Chat already imported, use --force to re-import.")
        return

    messages = sum(len(c.messages) for c in chat.chunks)
    click.echo(click.style("Import complete!", fg="green", bold=True))
    click.echo(f"  Chat:     {chat.name}")
    click.echo(f"  Days:     {len(chat.chunks)} ({messages} messages)")
    if chat.chunks:
        click.echo(f"  Range:    {chat.chunks[0].date} → {chat.chunks[-1].date}")


@cli.command("list")
@pass_app
def list_cmd(app: AppContext):
    """List imported chats and how much of each is analyzed."""
    try:
        imports = app.imports().load()
        cache = app.cache()
        rows = [(c.name, len(c.chunks), len(cache.indices(c.name))) for c in imports]
        cache.close()
    except ChatRecallError as e:
        raise click.ClickException(str(e)) from e

    if not rows:
        click.echo("No chats imported yet. Import a WhatsApp export first:")
        click.echo("  chatrecall import ~/Downloads/your-export.zip")
        return

    for name, total, cached in rows:
        click.echo(f"{name}  {cached}/{total} days analyzed")


@cli.command()
@click.argument("name")
@click.option(
    "--start", type=click.IntRange(min=0), default=0, show_default=True, help="First day-chunk index"
)
@click.option(
    "--count", type=click.IntRange(min=1), default=None, help="Number of day-chunks (default: all)"
)
@click.option(
    "--batch-size",
    type=click.IntRange(1, MAX_BATCH_CHUNKS),
    default=MAX_BATCH_CHUNKS,
    show_default=True,
)
@pass_app
def process(app: AppContext, name: str, start: int, count: int | None, batch_size: int):
    """Analyze a chat's day-chunks, reusing cached results.

    Safe to rerun after a failure: finished days are served from the cache.
    """
    from .client import OpenRouterClient
    from .processor import BatchProcessor
    from .prompt import load_system_prompt

    try:
        config = load_service_config()
        system_prompt = load_system_prompt()
        chat = app.imports().get(name)
    except ChatRecallError as e:
        raise click.ClickException(str(e)) from e

    if chat is None:
        raise click.ClickException(f"Chat not found: {name}")

    stop = None if count is None else start + count
    total = len(chat.chunks[start:stop])
    if total == 0:
        click.echo("Nothing to process.")
        return

    try:
        cache = app.cache()
    except ChatRecallError as e:
        raise click.ClickException(str(e)) from e
    client = OpenRouterClient(config)
    processor = BatchProcessor(cache, client, system_prompt=system_prompt)

    try:
        with click.progressbar(length=total, label=f"Analyzing {name}", show_pos=True) as bar:
            processor.process_chat(
                chat,
                batch_size=batch_size,
                start=start,
                stop=stop,
                on_batch=lambda batch, results: bar.update(len(results)),
            )
    except ChatRecallError as e:
        done = len(cache.indices(name))
        raise click.ClickException(
            f"{e}\n{done}/{len(chat.chunks)} days cached; rerun to continue."
        ) from e
    finally:
        client.close()
        cache.close()

    click.echo(click.style("Processing complete!", fg="green", bold=True))


@cli.command()
@click.argument("name")
@pass_app
def show(app: AppContext, name: str):
    """Print cached results for a chat as a JSON array, ordered by day."""
    try:
        cache = app.cache()
        results = cache.list_ordered(name)
        cache.close()
    except ChatRecallError as e:
        raise click.ClickException(str(e)) from e
    click.echo(json.dumps(results, indent=2, ensure_ascii=False))


@cli.command()
@click.argument("name")
@click.confirmation_option(
    prompt="This will delete the chat and all its cached results. Are you sure?"
)
@pass_app
def delete(app: AppContext, name: str):
    """Remove a chat from the import list and delete its cached results."""
    try:
        cache = app.cache()
        cache.purge(name)
        cache.close()
        removed = app.imports().remove(name)
    except ChatRecallError as e:
        raise click.ClickException(str(e)) from e

    if removed:
        click.echo(f"Deleted {name}")
    else:
        click.echo(f"{name} was not in the import list; cached results (if any) removed.")


@cli.command()
@pass_app
def stats(app: AppContext):
    """Show statistics about imported chats and the result cache."""
    try:
        imports = app.imports().load()
        cache = app.cache()
        cached = sum(len(cache.indices(c.name)) for c in imports)
        partitions = len(cache.conversations())
        cache.close()
    except ChatRecallError as e:
        raise click.ClickException(str(e)) from e

    days = sum(len(c.chunks) for c in imports)
    messages = sum(len(chunk.messages) for c in imports for chunk in c.chunks)

    click.echo()
    click.echo(click.style("chatrecall Statistics", bold=True))
    click.echo(f"  Chats:          {len(imports):,}")
    click.echo(f"  Days:           {days:,}")
    click.echo(f"  Messages:       {messages:,}")
    click.echo(f"  Days analyzed:  {cached:,}")
    click.echo(f"  Cached chats:   {partitions:,}")
    click.echo(f"  Cache backend:  {app.backend}")
    click.echo(f"  Location:       {app.paths.data_dir}")
    click.echo()


@cli.command()
@pass_app
def serve(app: AppContext):
    """Start the MCP server (stdio transport).

    Exposes processing, cache and saved-memory tools to an MCP client.
    """
    from . import server

    server.configure(app.paths, app.backend)
    server.mcp.run(transport="stdio")


@cli.command()
@click.confirmation_option(
    prompt="This will delete all imported chats and cached results. Are you sure?"
)
@pass_app
def reset(app: AppContext):
    """Delete all data and start fresh."""
    data_dir = app.paths.data_dir
    if data_dir.exists():
        shutil.rmtree(data_dir)
        click.echo(f"Deleted {data_dir}")
    else:
        click.echo("No data to delete.")
