import argparse
import asyncio
import json
import logging
import sys

from aiohttp import web

from .api import create_app_from_settings, validate_request
from .client import GitHubClient
from .config import settings
from .domain import (
    InvalidRequestError,
    NotFoundError,
    UpstreamUnavailableError,
    IncompleteDataError,
)
from .presentation import build_display_model, not_found_quote, render_text
from .repository import InMemoryResultRepository, PostgresResultRepository
from .service import WrappedService

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_INVALID = 2
EXIT_NOT_FOUND = 3
EXIT_UPSTREAM = 4


def parse_args(argv=None):
    p = argparse.ArgumentParser(description="GitHub Wrapped: a year in review")
    sub = p.add_subparsers(dest="command", required=True)

    fetch = sub.add_parser("fetch", help="Compute (or load) a user's Wrapped")
    fetch.add_argument("--username", required=True, help="GitHub login")
    fetch.add_argument(
        "--year", default=None, help="Year to summarize (default: last year)"
    )
    fetch.add_argument(
        "--summary",
        action="store_true",
        help="Print a text card instead of the raw JSON result",
    )
    fetch.add_argument(
        "--no-db",
        action="store_true",
        help="Use an in-memory store instead of PostgreSQL",
    )

    serve = sub.add_parser("serve", help="Run the HTTP API")
    serve.add_argument("--host", default=settings.host)
    serve.add_argument("--port", type=int, default=settings.port)

    sub.add_parser("init-db", help="Create the result table")
    return p.parse_args(argv)


async def fetch(args) -> int:
    try:
        username, year = validate_request(args.username, args.year, settings.min_year)
    except InvalidRequestError as e:
        logger.error(f"❌ {e}")
        return EXIT_INVALID

    store = InMemoryResultRepository() if args.no_db else PostgresResultRepository(
        settings.database_url
    )
    await store.init()
    try:
        await store.ensure_schema()
        async with GitHubClient.from_settings(settings) as client:
            result = await WrappedService(client, store).get_wrapped(username, year)
    except NotFoundError as e:
        logger.error(f"❌ {e}")
        print(not_found_quote())
        return EXIT_NOT_FOUND
    except (UpstreamUnavailableError, IncompleteDataError) as e:
        logger.error(f"❌ GitHub request failed: {e}")
        return EXIT_UPSTREAM
    except ValueError as e:
        logger.error(f"❌ {e}")
        return EXIT_ERROR
    finally:
        await store.close()

    if args.summary:
        print(render_text(build_display_model(result)))
    else:
        print(json.dumps(result.model_dump(mode="json", by_alias=True), indent=2))
    return EXIT_OK


async def init_db() -> int:
    store = PostgresResultRepository(settings.database_url)
    await store.init()
    try:
        await store.ensure_schema()
    finally:
        await store.close()
    logger.info("✅ wrapped_result table ready")
    return EXIT_OK


def run(argv=None) -> int:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    args = parse_args(argv)

    if args.command == "serve":
        logger.info(f"🚀 GitHub Wrapped API on {args.host}:{args.port}")
        web.run_app(create_app_from_settings(settings), host=args.host, port=args.port)
        return EXIT_OK
    if args.command == "init-db":
        return asyncio.run(init_db())
    return asyncio.run(fetch(args))


if __name__ == "__main__":
    sys.exit(run())
