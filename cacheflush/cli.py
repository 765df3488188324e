"""Command-line entry point for cacheflush."""
from __future__ import annotations
import logging
from typing import Optional

import click

from .config import load_settings
from .errors import ConfigInvalid
from .flush.context import RunContext
from .notify.sink import build_notifier
from .runner import CacheFlushRun

__version__ = "0.1.0"

logger = logging.getLogger("cacheflush")


def setup_logging(log_file: str, debug: bool = False) -> None:
    """Append structured log lines for the ``cacheflush`` logger to ``log_file``."""
    level = logging.DEBUG if debug else logging.INFO
    handler = logging.FileHandler(log_file, mode="a")
    handler.setLevel(level)
    formatter = logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )
    handler.setFormatter(formatter)
    for old in [h for h in logger.handlers if isinstance(h, logging.FileHandler)]:
        logger.removeHandler(old)
        old.close()
    logger.addHandler(handler)
    logger.setLevel(level)
    logger.propagate = False


@click.command()
@click.option("--config", "config_path", type=click.Path(dir_okay=False),
              help="Path to configuration file (default: ./cacheflush.yaml)")
@click.option("--skipmove", is_flag=True,
              help="Classify and log without moving files, useful for debugging.")
@click.option("--force", is_flag=True,
              help="Flush all files (not including overrides) regardless of age or access time.")
@click.version_option(__version__, prog_name="cacheflush")
def main(config_path: Optional[str], skipmove: bool, force: bool):
    """Flush files from cache drives down to the backing pool."""
    try:
        settings = load_settings(config_path)
    except ConfigInvalid as e:
        raise click.ClickException(str(e))

    if skipmove:
        settings.skip_move = True
    if force:
        settings.force = True

    try:
        setup_logging(settings.log_file, settings.debug_logging)
    except OSError as e:
        raise click.ClickException(f"Failed to open/create log file {settings.log_file}: {e}")

    context = RunContext.from_settings(settings)
    summary = CacheFlushRun(context, settings.cache_drives, build_notifier(settings)).run()
    click.echo(
        f"Flushed {summary.moved} files across {len(summary.drives)} drives"
        + (f", {len(summary.failed_drives)} drives failed" if summary.failed_drives else "")
    )
