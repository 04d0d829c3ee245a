"""
Command-line entry points: run the HTTP server, or prepare the database.
"""

from __future__ import annotations

import argparse
import logging

import uvicorn

from linkbio.config import get_settings
from linkbio.dependencies import build_db_client

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(name)s %(levelname)s %(asctime)s %(message)s"
LOG_DATEFMT = "%m/%d/%Y %I:%M:%S %p"


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format=LOG_FORMAT,
        datefmt=LOG_DATEFMT,
    )


def serve_main(argv: list[str] | None = None) -> int:
    settings = get_settings()
    parser = argparse.ArgumentParser(description="Link-in-bio portfolio server")
    parser.add_argument(
        "--host",
        type=str,
        default=settings.host,
        help="Interface to bind",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=settings.port,
        help="Port to listen on",
    )
    parser.add_argument(
        "--reload",
        action="store_true",
        help="Restart the server when source files change",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default=settings.log_level,
        help="Logging level (DEBUG, INFO, WARNING, ...)",
    )
    args = parser.parse_args(argv)

    _configure_logging(args.log_level)
    logger.info("Serving on http://%s:%d", args.host, args.port)
    uvicorn.run(
        "linkbio.app:create_app",
        factory=True,
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_level=args.log_level.lower(),
    )
    return 0


def init_db_main(argv: list[str] | None = None) -> int:
    settings = get_settings()
    parser = argparse.ArgumentParser(
        description="Create the portfolio tables and seed default categories"
    )
    parser.add_argument(
        "--database-url",
        type=str,
        default=None,
        help="Override DATABASE_URL",
    )
    args = parser.parse_args(argv)

    _configure_logging(settings.log_level)
    if args.database_url:
        settings = settings.model_copy(update={"database_url": args.database_url})

    db = build_db_client(settings)
    try:
        seeded = db.initialize()
    finally:
        db.close()
    if seeded:
        logger.info("Database initialized with default categories")
    else:
        logger.info("Database already initialized")
    return 0
