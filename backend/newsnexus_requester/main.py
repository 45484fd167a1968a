"""
Command line entry point for the NewsNexus Google RSS requester.

Usage:
    # Run only if the current UTC time is inside the execution window
    newsnexus-requester

    # Run regardless of the window
    newsnexus-requester --run-anyway

Exit codes: 0 on success or when the window is not active, 1 on any
configuration error or failure.
"""
import argparse
import asyncio
import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

import structlog
from pydantic import ValidationError

from newsnexus_requester.config import Settings
from newsnexus_requester.core.errors import RequesterError
from newsnexus_requester.jobs.requester_run import RequesterJob
from newsnexus_requester.models.database import Database
from newsnexus_requester.services.data_ingestion.rss import FeedFetcher
from newsnexus_requester.services.guardrail import WindowGate
from newsnexus_requester.services.scorer import ScorerLauncher, SubprocessScorerLauncher

logger = structlog.get_logger(__name__)

# Time given to log handlers before a fatal exit
FLUSH_DELAY_SECONDS = 0.1


def configure_logging(settings: Settings) -> None:
    """
    Configure structured logging.

    development: console only, DEBUG. testing: console and file, INFO.
    production: file only, INFO. The file rotates by size.
    """
    handlers: list[logging.Handler] = []

    if settings.environment in ("development", "testing"):
        handlers.append(logging.StreamHandler(sys.stdout))

    if settings.environment in ("testing", "production"):
        log_dir = Path(settings.log_dir)
        log_dir.mkdir(parents=True, exist_ok=True)
        handlers.append(RotatingFileHandler(
            log_dir / f"{settings.app_name}.log",
            maxBytes=settings.log_max_size_mb * 1024 * 1024,
            backupCount=settings.log_max_files,
            encoding="utf-8",
        ))

    level = logging.DEBUG if settings.environment == "development" else logging.INFO
    logging.basicConfig(level=level, format="%(message)s", handlers=handlers, force=True)

    if settings.environment == "development":
        renderer = structlog.dev.ConsoleRenderer(colors=False)
    else:
        renderer = structlog.processors.JSONRenderer()

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
    )


async def _fail(message: str) -> int:
    logger.error(message)
    print(message, file=sys.stderr)
    await asyncio.sleep(FLUSH_DELAY_SECONDS)
    return 1


async def run_requester(
    settings: Settings,
    run_anyway: bool = False,
    launcher: Optional[ScorerLauncher] = None,
    fetcher: Optional[FeedFetcher] = None,
) -> int:
    """Run the requester and return the process exit code."""
    try:
        status = WindowGate(settings).evaluate()
    except RequesterError as e:
        return await _fail(str(e))

    logger.info(
        f"Guardrail window {status.window_start}-{status.window_end} UTC "
        f"(target {status.target_time}, now {status.current_time}).",
        within_window=status.within_window,
        window_minutes=status.window_minutes,
    )

    if not status.within_window:
        if not run_anyway:
            message = "Guardrail window not active. Exiting before processing requests."
            logger.warning(message)
            print(message, file=sys.stderr)
            await asyncio.sleep(FLUSH_DELAY_SECONDS)
            return 0
        logger.warning("Guardrail window not active, running anyway (--run-anyway).")

    database = Database(settings.database_url)
    job = RequesterJob(
        settings,
        database,
        launcher=launcher or SubprocessScorerLauncher(),
        fetcher=fetcher,
    )
    try:
        await job.run()
    except RequesterError as e:
        return await _fail(str(e))
    except Exception as e:
        logger.exception("Unhandled application error")
        return await _fail(str(e) or "Unhandled application error.")
    finally:
        await database.dispose()

    logger.info(f"{settings.app_name} finished.")
    return 0


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        description="NewsNexus - Google News RSS requester"
    )
    parser.add_argument(
        "--run-anyway",
        action="store_true",
        help="Run even if the current time is outside the guardrail window",
    )
    args = parser.parse_args(argv)

    try:
        settings = Settings()
    except ValidationError as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        return 1

    configure_logging(settings)
    return asyncio.run(run_requester(settings, run_anyway=args.run_anyway))


if __name__ == "__main__":
    sys.exit(main())
