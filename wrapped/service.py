import asyncio
import logging
from datetime import datetime, timezone

from .client import GitHubClient
from .domain import StoreConflictError
from .insights import compute_insights
from .models import WrappedResult, ResultSource

logger = logging.getLogger(__name__)


class WrappedService:
    """
    Cache-or-compute coordinator for Wrapped results.

    A stored result is returned unchanged. Otherwise both GitHub queries run
    concurrently, insights are computed and the result is stored once. Any
    failure before the insert leaves the store untouched. Results are never
    refreshed: past years do not change.
    """

    def __init__(self, client: GitHubClient, store):
        self.client = client
        self.store = store

    async def get_wrapped(self, username: str, year: int) -> WrappedResult:
        username = username.strip().lower()

        cached = await self.store.find_by_key(username, year)
        if cached is not None:
            logger.info(f"✅ Cache hit for {username} ({year})")
            return cached

        logger.info(f"🔍 Fetching GitHub data for {username} ({year})...")
        tasks = [
            asyncio.create_task(self.client.fetch_overview(username)),
            asyncio.create_task(self.client.fetch_contributions(username, year)),
        ]
        try:
            overview, contributions = await asyncio.gather(*tasks)
        except Exception:
            # Stop the sibling fetch before the caller closes the session.
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

        generated_at = datetime.now(timezone.utc)
        insights = compute_insights(overview, contributions, year, now=generated_at)
        result = WrappedResult(
            username=username,
            year=year,
            generated_at=generated_at,
            source=ResultSource(),
            insights=insights,
        )

        try:
            await self.store.insert_unique(result)
        except StoreConflictError:
            existing = await self.store.find_by_key(username, year)
            if existing is None:
                raise
            logger.warning(
                f"⚠️ {username} ({year}) was stored by a concurrent request; "
                f"returning the stored copy"
            )
            return existing

        logger.info(f"✅ Wrapped result generated for {username} ({year})")
        return result
