"""
HTTP boundary for GitHub Wrapped.

Parses and validates the request, delegates to WrappedService and maps the
domain error taxonomy onto status codes. No insight logic lives here.
"""

import logging
import re
from datetime import date
from typing import Optional, Tuple

from aiohttp import web

from .client import GitHubClient
from .config import Settings
from .domain import (
    InvalidRequestError,
    IncompleteDataError,
    NotFoundError,
    UpstreamUnavailableError,
)
from .repository import PostgresResultRepository
from .service import WrappedService

logger = logging.getLogger(__name__)

USERNAME_PATTERN = re.compile(r"^[a-zA-Z0-9]([a-zA-Z0-9-]*[a-zA-Z0-9])?$")
MAX_USERNAME_LENGTH = 39

SERVICE_KEY = web.AppKey("service", WrappedService)
MIN_YEAR_KEY = web.AppKey("min_year", int)


def validate_request(
    username: Optional[str],
    year: Optional[str],
    min_year: int = 2008,
    today: Optional[date] = None,
) -> Tuple[str, int]:
    """
    Validate raw request values and return (normalized username, year).

    The year defaults to the previous calendar year.
    """
    today = today or date.today()

    if not username or not isinstance(username, str):
        raise InvalidRequestError("Username is required and must be a string")
    username = username.strip()
    if len(username) > MAX_USERNAME_LENGTH or not USERNAME_PATTERN.match(username):
        raise InvalidRequestError("Invalid GitHub username format")

    if year in (None, ""):
        wrapped_year = today.year - 1
    else:
        try:
            wrapped_year = int(year)
        except (TypeError, ValueError):
            raise InvalidRequestError(
                f"Year must be between {min_year} and {today.year}"
            ) from None
    if not min_year <= wrapped_year <= today.year:
        raise InvalidRequestError(f"Year must be between {min_year} and {today.year}")

    return username.lower(), wrapped_year


def _error(status: int, message: str) -> web.Response:
    return web.json_response({"error": message}, status=status)


async def get_wrapped(request: web.Request) -> web.Response:
    """GET /api/wrapped?username=<username>&year=<year>"""
    min_year = request.app[MIN_YEAR_KEY]
    try:
        username, year = validate_request(
            request.query.get("username"), request.query.get("year"), min_year
        )
        result = await request.app[SERVICE_KEY].get_wrapped(username, year)
    except InvalidRequestError as e:
        return _error(400, str(e))
    except NotFoundError as e:
        return _error(404, str(e))
    except (UpstreamUnavailableError, IncompleteDataError) as e:
        logger.error(f"❌ Upstream failure: {e}")
        return _error(502, str(e))

    return web.json_response(
        {"success": True, "data": result.model_dump(mode="json", by_alias=True)}
    )


async def health(request: web.Request) -> web.Response:
    return web.json_response({"status": "ok"})


@web.middleware
async def error_middleware(request: web.Request, handler):
    try:
        return await handler(request)
    except web.HTTPNotFound:
        return _error(404, "Route not found")
    except web.HTTPException:
        raise
    except Exception:
        logger.exception(f"❌ Unhandled error for {request.path}")
        return _error(500, "Internal Server Error")


def create_app(service: WrappedService, min_year: int = 2008) -> web.Application:
    app = web.Application(middlewares=[error_middleware])
    app[SERVICE_KEY] = service
    app[MIN_YEAR_KEY] = min_year
    app.router.add_get("/api/wrapped", get_wrapped)
    app.router.add_get("/health", health)
    return app


def create_app_from_settings(config: Settings) -> web.Application:
    """
    Build the app with a GitHub client and Postgres store owned by its lifecycle.
    """
    client = GitHubClient.from_settings(config)
    store = PostgresResultRepository(config.database_url)
    app = create_app(WrappedService(client, store), min_year=config.min_year)

    async def resources(app: web.Application):
        await store.init()
        try:
            await store.ensure_schema()
            async with client:
                yield
        finally:
            await store.close()

    app.cleanup_ctx.append(resources)
    return app
