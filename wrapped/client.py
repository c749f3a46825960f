import aiohttp
import asyncio
import math
import logging
from typing import Optional, List, Dict, Any

from .config import Settings
from .domain import (
    RepositoryOverview,
    UserOverview,
    ContributionSummary,
    NotFoundError,
    UpstreamUnavailableError,
    RateLimitError,
    AuthenticationError,
    IncompleteDataError,
    transform_repository,
    transform_user_overview,
    transform_contributions,
    year_window,
    format_github_datetime,
)

logger = logging.getLogger(__name__)

DEFAULT_GRAPHQL_URL = "https://api.github.com/graphql"

USER_OVERVIEW_QUERY = """
query getUserOverview($userName: String!, $cursor: String, $pageSize: Int!) {
  user(login: $userName) {
    login
    createdAt
    bio
    company
    location
    followers {
      totalCount
    }
    following {
      totalCount
    }
    repositories(
      first: $pageSize
      after: $cursor
      privacy: PUBLIC
      ownerAffiliations: OWNER
      orderBy: {field: UPDATED_AT, direction: DESC}
    ) {
      totalCount
      pageInfo {
        endCursor
        hasNextPage
      }
      nodes {
        name
        description
        stargazerCount
        forkCount
        watchers {
          totalCount
        }
        createdAt
        updatedAt
        pushedAt
        isArchived
        isPrivate
        diskUsage
        primaryLanguage {
          name
          color
        }
        languages(first: 10, orderBy: {field: SIZE, direction: DESC}) {
          totalSize
          edges {
            size
            node {
              name
              color
            }
          }
        }
        licenseInfo {
          name
          spdxId
        }
        repositoryTopics(first: 20) {
          nodes {
            topic {
              name
            }
          }
        }
      }
    }
  }
}"""

USER_CONTRIBUTIONS_QUERY = """
query getUserContributions($userName: String!, $from: DateTime!, $to: DateTime!) {
  user(login: $userName) {
    contributionsCollection(from: $from, to: $to) {
      totalCommitContributions
      totalRepositoryContributions
      totalIssueContributions
      totalPullRequestContributions
      totalPullRequestReviewContributions
      contributionCalendar {
        totalContributions
        weeks {
          contributionDays {
            contributionCount
            date
            weekday
          }
        }
      }
    }
  }
}"""


class GitHubClient:
    """
    GitHub GraphQL client for the two Wrapped queries.

    Raw responses never leave this class: callers get domain objects or one
    of NotFoundError / UpstreamUnavailableError. Requests are not retried;
    retry policy belongs to the caller.
    """

    def __init__(
        self,
        token: str,
        graphql_url: str = DEFAULT_GRAPHQL_URL,
        page_size: int = 100,
        max_repos: int = 1000,
        timeout: float = 30.0,
    ):
        if not token:
            raise ValueError("GitHub token is required")
        if page_size <= 0 or max_repos <= 0:
            raise ValueError("page_size and max_repos must be positive")

        self.graphql_url = graphql_url
        self.page_size = min(page_size, max_repos)
        self.max_repos = max_repos
        self.timeout = timeout
        self.headers = {
            "Authorization": f"Bearer {token}",
            "Content-Type": "application/json",
            "User-Agent": "GitHub-Wrapped/1.0",
        }
        self._session = None

    @classmethod
    def from_settings(cls, config: Settings) -> "GitHubClient":
        return cls(
            token=config.github_token,
            graphql_url=config.github_api_url,
            page_size=config.page_size,
            max_repos=config.max_repos,
            timeout=config.request_timeout,
        )

    async def __aenter__(self):
        """Async context manager entry."""
        self._session = aiohttp.ClientSession(
            headers=self.headers,
            timeout=aiohttp.ClientTimeout(total=self.timeout),
        )
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        if self._session:
            await self._session.close()
            self._session = None

    async def _make_graphql_request(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """
        POST a GraphQL payload and return its ``data`` object.

        Transport failures, non-200 responses and GraphQL errors are all
        normalized here into domain errors.
        """
        if not self._session:
            raise RuntimeError("Client must be used as async context manager")

        try:
            async with self._session.post(self.graphql_url, json=payload) as resp:
                if resp.status == 401:
                    raise AuthenticationError("GitHub API authentication failed")

                if resp.status == 403:
                    response_text = await resp.text()
                    if "rate limit" in response_text.lower():
                        raise RateLimitError("GitHub API rate limit exceeded")
                    raise UpstreamUnavailableError(
                        f"GitHub API error: forbidden ({response_text[:200]})"
                    )

                if resp.status != 200:
                    raise UpstreamUnavailableError(
                        f"GitHub API error: HTTP {resp.status}"
                    )

                response_data = await resp.json()
        except (aiohttp.ContentTypeError, ValueError) as e:
            raise UpstreamUnavailableError(
                f"GitHub API error: malformed response ({e})"
            ) from e
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error(f"❌ Network error talking to GitHub: {e}")
            raise UpstreamUnavailableError(f"GitHub API error: {e}") from e

        if not isinstance(response_data, dict):
            raise UpstreamUnavailableError("GitHub API error: malformed response")

        errors = response_data.get("errors")
        if errors:
            for error in errors:
                error_type = error.get("type")
                if error_type == "NOT_FOUND":
                    raise NotFoundError(error.get("message") or "User not found")
                if error_type == "RATE_LIMITED":
                    raise RateLimitError(f"GitHub API error: {error.get('message')}")
                if error_type == "FORBIDDEN":
                    raise AuthenticationError(
                        f"GitHub API error: {error.get('message')}"
                    )
            messages = "; ".join(str(error.get("message", error)) for error in errors)
            logger.error(f"❌ GraphQL query failed: {messages}")
            raise UpstreamUnavailableError(f"GitHub API error: {messages}")

        data = response_data.get("data")
        if not data:
            raise UpstreamUnavailableError("GitHub API error: no data in response")
        return data

    async def _fetch_user(self, username: str, query: str, variables: Dict[str, Any]):
        data = await self._make_graphql_request(
            {"query": query, "variables": {"userName": username, **variables}}
        )
        user = data.get("user")
        if user is None:
            raise NotFoundError(f"GitHub user '{username}' not found")
        return user

    async def fetch_overview(self, username: str) -> UserOverview:
        """
        Fetch profile fields and up to ``max_repos`` repositories.

        Profile fields and the authoritative total are read from the first
        page. Pagination stops when there is no next page or the cap is hit.
        """
        repositories: List[RepositoryOverview] = []
        first_user: Optional[Dict[str, Any]] = None
        cursor = None
        pages = 0
        max_pages = math.ceil(self.max_repos / self.page_size)

        while len(repositories) < self.max_repos and pages < max_pages:
            user = await self._fetch_user(
                username,
                USER_OVERVIEW_QUERY,
                {"cursor": cursor, "pageSize": self.page_size},
            )
            if first_user is None:
                first_user = user

            repo_data = user.get("repositories")
            if repo_data is None:
                raise IncompleteDataError(
                    f"Unable to fetch repository data for {username}"
                )

            for node in repo_data.get("nodes") or []:
                if node is None:
                    continue
                repositories.append(transform_repository(node))
            pages += 1

            logger.debug(
                f"📄 Page {pages}: {len(repositories)} repositories for {username}"
            )

            page_info = repo_data.get("pageInfo") or {}
            if not page_info.get("hasNextPage"):
                break
            cursor = page_info.get("endCursor")
        else:
            logger.warning(
                f"⚠️ Repository cap of {self.max_repos} reached for {username}; "
                f"statistics cover the most recently updated repositories only"
            )

        return transform_user_overview(first_user, repositories[: self.max_repos])

    async def fetch_contributions(self, username: str, year: int) -> ContributionSummary:
        """Fetch the contribution calendar bounded to the UTC year window."""
        start, end = year_window(year)
        user = await self._fetch_user(
            username,
            USER_CONTRIBUTIONS_QUERY,
            {"from": format_github_datetime(start), "to": format_github_datetime(end)},
        )

        collection = user.get("contributionsCollection")
        if collection is None:
            raise IncompleteDataError(
                f"Unable to fetch contribution data for {username} ({year})"
            )
        return transform_contributions(collection)
