"""Command-line interface.

``vocabulator`` without a subcommand starts the interactive trainer;
``vocabulator seed <path>`` merges a vocabulary file into the store.
"""
import logging
import sys
from typing import Optional, Tuple

import click

from vocabulator.app import VocabulatorApp
from vocabulator.config import ensure_directories, settings, SEED_FORMATS
from vocabulator.exceptions import CorruptData, IoFailure
from vocabulator.logging_config import setup_logging
from vocabulator.monitoring import start_monitoring
from vocabulator.services.persistence import SqlPersistenceGateway
from vocabulator.services.progress_store import ProgressStore
from vocabulator.services.seed_service import get_parser
from vocabulator.services.vocabulary_store import VocabularyStore
from vocabulator.utils import format_accuracy, group_summaries

logger = logging.getLogger(__name__)


def _open_gateway(ctx: click.Context) -> SqlPersistenceGateway:
    ensure_directories()
    return SqlPersistenceGateway(ctx.obj["database_url"])


def _report_corrupt(e: CorruptData) -> None:
    click.echo(f"Error: {e}", err=True)
    click.echo(
        "Your learning history was left untouched. Re-run with --reset-corrupt "
        "to move the damaged store aside and start a fresh one.",
        err=True,
    )


def _load_stores(ctx: click.Context, gateway: SqlPersistenceGateway) -> Tuple[VocabularyStore, ProgressStore]:
    """Load the stores, backing up a corrupt store only when asked to."""
    try:
        return gateway.load()
    except CorruptData as e:
        if not ctx.obj["reset_corrupt"]:
            raise
        logger.warning(f"Resetting corrupt store: {e}")
        backup = gateway.backup_corrupt_store()
        if backup is not None:
            click.echo(f"Moved the unreadable store to {backup}", err=True)
        return gateway.load()


@click.group(invoke_without_command=True)
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose logging")
@click.option("--database-url", default=None, help="Database URL (default: DATABASE_URL or data/vocab.db)")
@click.option("--reset-corrupt", is_flag=True, help="Back up an unreadable store and start a fresh one")
@click.pass_context
def cli(ctx: click.Context, verbose: bool, database_url: Optional[str], reset_corrupt: bool):
    """Vocabulator: learn vocabulary groups in the terminal."""
    ctx.ensure_object(dict)
    ctx.obj["database_url"] = database_url or settings.database.url
    ctx.obj["reset_corrupt"] = reset_corrupt
    interactive = ctx.invoked_subcommand is None
    setup_logging(
        "Starting Vocabulator ...",
        level=logging.DEBUG if verbose else None,
        console=not interactive,
    )
    if interactive:
        ctx.exit(run_interactive(ctx))


def run_interactive(ctx: click.Context) -> int:
    """Load the stores and run the trainer; returns the exit code."""
    try:
        gateway = _open_gateway(ctx)
        vocabulary, progress = _load_stores(ctx, gateway)
    except CorruptData as e:
        _report_corrupt(e)
        return 1
    except IoFailure as e:
        click.echo(f"Error: {e}", err=True)
        return 1

    if settings.interface.metrics_port:
        start_monitoring(settings.interface.metrics_port)
        logger.info(f"Metrics served on port {settings.interface.metrics_port}")

    app = VocabulatorApp(gateway, vocabulary, progress)
    try:
        return app.run()
    except KeyboardInterrupt:
        logger.info("Received keyboard interrupt, shutting down...")
        return 0
    finally:
        gateway.close()


@cli.command()
@click.argument("path", type=click.Path(dir_okay=False))
@click.option("--format", "seed_format", type=click.Choice(SEED_FORMATS), default=None,
              help="Seed file format (default: SEED_FORMAT)")
@click.option("--chunk-size", type=click.IntRange(min=1), default=None,
              help="Words per group for the tsv format (default: SEED_CHUNK_SIZE)")
@click.pass_context
def seed(ctx: click.Context, path: str, seed_format: Optional[str], chunk_size: Optional[int]):
    """Merge vocabulary from PATH into the store."""
    try:
        gateway = _open_gateway(ctx)
        if ctx.obj["reset_corrupt"]:
            _load_stores(ctx, gateway)
        report = gateway.seed(path, get_parser(seed_format, chunk_size))
    except CorruptData as e:
        _report_corrupt(e)
        sys.exit(1)
    except IoFailure as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    click.echo(f"Words added: {report.added}")
    click.echo(f"Already known: {report.duplicates}")
    click.echo(f"Lines skipped: {report.skipped}")
    for warning in report.warnings:
        click.echo(f"  {warning}", err=True)
    click.echo(f"Vocabulary size: {len(report.vocabulary)} words in {len(report.vocabulary.groups())} groups")
    gateway.close()


@cli.command()
@click.pass_context
def stats(ctx: click.Context):
    """Show progress per group."""
    try:
        gateway = _open_gateway(ctx)
        vocabulary, progress = _load_stores(ctx, gateway)
    except CorruptData as e:
        _report_corrupt(e)
        sys.exit(1)
    except IoFailure as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    summaries = group_summaries(vocabulary, progress, settings.learning.weak_accuracy_threshold)
    if not summaries:
        click.echo("No words yet. Run 'vocabulator seed <path>' first.")
        gateway.close()
        return

    click.echo(f"{'Group':>6} {'Words':>6} {'Seen':>6} {'Accuracy':>9} {'Weak':>5} {'Marked':>7}")
    for summary in summaries:
        click.echo(
            f"{summary.group:>6} {summary.words:>6} {summary.seen:>6} "
            f"{format_accuracy(summary.stat):>9} {summary.weak:>5} {summary.marked:>7}"
        )
    click.echo(
        f"\n{sum(s.marked for s in summaries)} bookmarked, {sum(s.weak for s in summaries)} weak"
    )
    gateway.close()


def main():
    """Main CLI entry point."""
    cli()


if __name__ == "__main__":
    main()
