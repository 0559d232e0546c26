"""image-report CLI interface."""

from __future__ import annotations

import asyncio
import logging
import os
import sys

import click  # type: ignore[import-not-found]

from image_report import __version__


def setup_logging(verbose: bool = False) -> None:
    """Configure logging for the report CLI.

    Args:
        verbose: Enable debug level logging
    """
    log_level = logging.DEBUG if verbose else logging.WARNING
    log_format = "%(asctime)s [%(levelname)-8s] %(name)s: %(message)s"
    date_format = "%H:%M:%S"

    logging.basicConfig(
        level=log_level, format=log_format, datefmt=date_format, stream=sys.stderr, force=True
    )
    # Keep transport chatter out of verbose runs
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


@click.command(context_settings={"ignore_unknown_options": True})
@click.argument("args", nargs=-1, type=click.UNPROCESSED)
@click.option("--verbose", "-v", is_flag=True, help="Log the request and payload")
@click.version_option(version=__version__)
def cli(args: tuple[str, ...], verbose: bool) -> None:
    """Stream an image report from the Codefresh app-proxy.

    Configuration is read from CF_ prefixed environment variables. Pass
    `verbose` (or set VERBOSE=1) to log the payload and request.
    """
    from image_report.runner import is_verbose, main

    argv = list(args)
    if verbose:
        argv.append("verbose")

    env = dict(os.environ)
    setup_logging(is_verbose(argv, env))

    try:
        exit_code = asyncio.run(main(argv, env))
    except KeyboardInterrupt:
        sys.exit(130)
    sys.exit(exit_code)
