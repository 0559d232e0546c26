"""Session runner: validate, build the request, stream the report.

Takes CF_ prefixed environment variables and streams the image report from
the app-proxy, printing report, info and warning events as they arrive.
"""

from __future__ import annotations

import json
import logging
from typing import Mapping, Optional, Sequence

from image_report.core.config import ReportConfig, is_truthy, validate
from image_report.core.request import build_url_headers
from image_report.stream.console import ConsoleReporter
from image_report.stream.session import EventSourceFactory, StreamingSession


logger = logging.getLogger(__name__)

INVALID_KEY_STATUS = 500
MASK_VISIBLE_CHARS = 6


def is_verbose(args: Sequence[str], env: Mapping[str, Optional[str]]) -> bool:
    """Return True if verbose output was requested by argument or VERBOSE."""
    if "verbose" in args or "--verbose" in args:
        return True
    return is_truthy(env.get("VERBOSE") or "")


def mask_api_key(api_key: str) -> str:
    """Show only the ends of an API key.

    Keys of twelve characters or more keep six characters on each side.
    Shorter keys keep a quarter of their length on each side, so at least
    half of such a key stays hidden.
    """
    if len(api_key) >= 2 * MASK_VISIBLE_CHARS:
        shown = MASK_VISIBLE_CHARS
    else:
        shown = len(api_key) // 4
    if not shown:
        return ".."
    return f"{api_key[:shown]}..{api_key[-shown:]}"


async def _stream_report(
    config: ReportConfig,
    verbose: bool,
    reporter: ConsoleReporter,
    source_factory: Optional[EventSourceFactory],
) -> None:
    target = build_url_headers(config)

    if verbose:
        logger.debug(f"Payload: {json.dumps(config.as_payload(), indent=2, default=str)}")
        logger.debug(
            f"Sending request: {target.url}, headers: {json.dumps(target.redacted_headers())}"
        )

    if config.ci_type and config.workflow_url:
        reporter.notice(f"Running {config.ci_type} URL: {config.workflow_url}")

    session = StreamingSession(
        reporter=reporter,
        source_factory=source_factory,
        timeout=config.stream_timeout,
    )
    outcome = await session.start(target)
    outcome.unwrap()


async def run(
    args: Sequence[str],
    env: Mapping[str, Optional[str]],
    source_factory: Optional[EventSourceFactory] = None,
    reporter: Optional[ConsoleReporter] = None,
) -> None:
    """Stream one image report.

    Args:
        args: Command line arguments; ``verbose`` enables diagnostic logging.
        env: Environment mapping the configuration is read from.
        source_factory: Optional event source factory, for alternative transports.
        reporter: Optional console reporter.

    Raises:
        ConfigurationError: If the environment is incomplete.
        StreamFailure: If the stream failed. A status 500 failure also prints
            a masked API key hint before being re-raised.
    """
    reporter = reporter or ConsoleReporter()
    config: Optional[ReportConfig] = None
    try:
        verbose = is_verbose(args, env)
        if verbose:
            logger.debug("Running with verbose log")
        config = validate(env)
        await _stream_report(config, verbose, reporter, source_factory)
    except Exception as e:
        reporter.error(e)
        if getattr(e, "type", None) == "error" and getattr(e, "status", None) == INVALID_KEY_STATUS:
            # the key may have come from .env rather than the process environment
            if config is not None:
                api_key = config.api_key.get_secret_value()
            else:
                api_key = env.get("CF_API_KEY") or ""
            reporter.hint(
                "Error 500 are usually caused by providing an invalid CF_API_KEY, "
                "please check the validity of the provided codefresh api token "
                f"{mask_api_key(api_key)}"
            )
        raise


async def main(
    args: Sequence[str],
    env: Mapping[str, Optional[str]],
    source_factory: Optional[EventSourceFactory] = None,
    reporter: Optional[ConsoleReporter] = None,
) -> int:
    """Run a session and map its result to a process exit code"""
    try:
        await run(args, env, source_factory=source_factory, reporter=reporter)
    except Exception:
        logger.debug("Report session failed", exc_info=True)
        return 1
    return 0
