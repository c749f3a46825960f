"""
Domain models for GitHub Wrapped.

This module provides immutable snapshots of the upstream GitHub data and the
error taxonomy shared by every layer. The ``transform_*`` functions form the
anti-corruption layer: raw GraphQL payloads go in, typed domain objects come
out, and nothing downstream ever touches a raw dictionary.
"""

from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Optional, List, Dict, Any, Tuple

from dateutil import parser as date_parser


class WrappedError(Exception):
    """Base exception for GitHub Wrapped errors."""

    pass


class NotFoundError(WrappedError):
    """Raised when the requested GitHub login does not exist."""

    pass


class UpstreamUnavailableError(WrappedError):
    """Raised for any upstream failure other than a missing user."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class AuthenticationError(UpstreamUnavailableError):
    """Raised when GitHub API authentication fails."""

    pass


class RateLimitError(UpstreamUnavailableError):
    """Raised when GitHub API rate limit is exceeded."""

    pass


class IncompleteDataError(WrappedError):
    """Raised when an upstream payload lacks a required substructure."""

    pass


class InvalidRequestError(WrappedError):
    """Raised when a username or year fails validation."""

    pass


class StoreConflictError(WrappedError):
    """Raised when a result for (username, year) is already stored."""

    def __init__(self, username: str, year: int):
        super().__init__(f"Wrapped result already stored for {username} ({year})")
        self.username = username
        self.year = year


@dataclass(frozen=True)
class Language:
    """A language as reported by GitHub, optionally with its byte size."""

    name: str
    color: Optional[str] = None
    size: int = 0


@dataclass(frozen=True)
class License:
    """Repository license info; either field may be missing upstream."""

    name: Optional[str] = None
    spdx_id: Optional[str] = None

    @property
    def display_name(self) -> str:
        return self.name or self.spdx_id or "Unknown"


@dataclass(frozen=True)
class RepositoryOverview:
    """Immutable snapshot of one repository at fetch time."""

    name: str
    stars: int = 0
    forks: int = 0
    watchers: int = 0
    description: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    pushed_at: Optional[datetime] = None
    is_archived: bool = False
    is_private: bool = False
    disk_usage: int = 0
    primary_language: Optional[Language] = None
    languages: Tuple[Language, ...] = ()
    languages_total_size: int = 0
    license: Optional[License] = None
    topics: Tuple[str, ...] = ()

    def __post_init__(self):
        """Validate repository data after initialization."""
        if not self.name:
            raise ValueError("Repository name is required")
        if self.stars < 0 or self.forks < 0:
            raise ValueError("Star and fork counts cannot be negative")


@dataclass(frozen=True)
class UserOverview:
    """Profile fields plus the retrieved (possibly capped) repository list."""

    login: str
    created_at: Optional[datetime] = None
    bio: Optional[str] = None
    company: Optional[str] = None
    location: Optional[str] = None
    followers: int = 0
    following: int = 0
    total_repositories: int = 0
    repositories: Optional[List[RepositoryOverview]] = field(default_factory=list)


@dataclass(frozen=True)
class ContributionDay:
    date: date
    contribution_count: int
    weekday: Optional[int] = None

    def __post_init__(self):
        if self.contribution_count < 0:
            raise ValueError("Contribution count cannot be negative")


@dataclass(frozen=True)
class ContributionWeek:
    days: Tuple[ContributionDay, ...] = ()


@dataclass(frozen=True)
class ContributionCalendar:
    total_contributions: int = 0
    weeks: Tuple[ContributionWeek, ...] = ()

    def iter_days(self):
        """Yield every day in chronological order."""
        for week in self.weeks:
            yield from week.days


@dataclass(frozen=True)
class ContributionSummary:
    """Aggregate counts plus the daily calendar for one year."""

    total_commit_contributions: int = 0
    total_pull_request_contributions: int = 0
    total_issue_contributions: int = 0
    total_pull_request_review_contributions: int = 0
    total_repository_contributions: int = 0
    calendar: Optional[ContributionCalendar] = None

    @property
    def total_contributions(self) -> int:
        return self.calendar.total_contributions if self.calendar else 0


def year_window(year: int) -> Tuple[datetime, datetime]:
    """Inclusive UTC bounds of a calendar year, millisecond precision."""
    start = datetime(year, 1, 1, 0, 0, 0, 0, tzinfo=timezone.utc)
    end = datetime(year, 12, 31, 23, 59, 59, 999000, tzinfo=timezone.utc)
    return start, end


def format_github_datetime(dt: datetime) -> str:
    """Render an aware datetime the way GitHub's DateTime scalar expects."""
    dt = dt.astimezone(timezone.utc)
    return dt.strftime("%Y-%m-%dT%H:%M:%S.") + f"{dt.microsecond // 1000:03d}Z"


def parse_github_datetime(dt_input) -> Optional[datetime]:
    """
    Parse a GitHub datetime string or datetime into an aware UTC datetime.

    Values without an offset (including bare dates) are taken as UTC.
    """
    if not dt_input:
        return None

    if isinstance(dt_input, datetime):
        dt = dt_input
    elif isinstance(dt_input, str):
        dt = date_parser.isoparse(dt_input)
    else:
        raise ValueError(f"Unsupported datetime value: {dt_input!r}")

    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def _language(node: Optional[Dict[str, Any]], size: int = 0) -> Optional[Language]:
    if not node or not node.get("name"):
        return None
    return Language(name=node["name"], color=node.get("color"), size=size)


def transform_repository(node: Dict[str, Any]) -> RepositoryOverview:
    """
    Transform a repository node from the overview query into a domain object.
    """
    try:
        languages_data = node.get("languages") or {}
        languages = tuple(
            lang
            for lang in (
                _language(edge.get("node"), edge.get("size") or 0)
                for edge in languages_data.get("edges") or []
            )
            if lang is not None
        )

        license_data = node.get("licenseInfo")
        license_info = None
        if license_data:
            license_info = License(
                name=license_data.get("name"), spdx_id=license_data.get("spdxId")
            )

        topics_data = node.get("repositoryTopics") or {}
        topics = tuple(
            topic_node["topic"]["name"] for topic_node in topics_data.get("nodes") or []
        )

        return RepositoryOverview(
            name=node["name"],
            description=node.get("description"),
            stars=node.get("stargazerCount") or 0,
            forks=node.get("forkCount") or 0,
            watchers=(node.get("watchers") or {}).get("totalCount", 0),
            created_at=parse_github_datetime(node.get("createdAt")),
            updated_at=parse_github_datetime(node.get("updatedAt")),
            pushed_at=parse_github_datetime(node.get("pushedAt")),
            is_archived=bool(node.get("isArchived")),
            is_private=bool(node.get("isPrivate")),
            disk_usage=node.get("diskUsage") or 0,
            primary_language=_language(node.get("primaryLanguage")),
            languages=languages,
            languages_total_size=languages_data.get("totalSize") or 0,
            license=license_info,
            topics=topics,
        )
    except (KeyError, ValueError, TypeError) as e:
        raise IncompleteDataError(f"Invalid repository node: {e}") from e


def transform_user_overview(
    user: Dict[str, Any], repositories: List[RepositoryOverview]
) -> UserOverview:
    """Build a UserOverview from the first page's user object."""
    try:
        return UserOverview(
            login=user["login"],
            created_at=parse_github_datetime(user.get("createdAt")),
            bio=user.get("bio") or None,
            company=user.get("company") or None,
            location=user.get("location") or None,
            followers=(user.get("followers") or {}).get("totalCount", 0),
            following=(user.get("following") or {}).get("totalCount", 0),
            total_repositories=user["repositories"]["totalCount"],
            repositories=repositories,
        )
    except (KeyError, ValueError, TypeError) as e:
        raise IncompleteDataError(f"Invalid user overview: {e}") from e


def transform_contributions(collection: Dict[str, Any]) -> ContributionSummary:
    """Transform a contributionsCollection object into a ContributionSummary."""
    try:
        calendar_data = collection["contributionCalendar"]
        weeks = tuple(
            ContributionWeek(
                days=tuple(
                    ContributionDay(
                        date=date.fromisoformat(day["date"]),
                        contribution_count=day["contributionCount"],
                        weekday=day.get("weekday"),
                    )
                    for day in week["contributionDays"]
                )
            )
            for week in calendar_data["weeks"]
        )
        return ContributionSummary(
            total_commit_contributions=collection.get("totalCommitContributions", 0),
            total_pull_request_contributions=collection.get(
                "totalPullRequestContributions", 0
            ),
            total_issue_contributions=collection.get("totalIssueContributions", 0),
            total_pull_request_review_contributions=collection.get(
                "totalPullRequestReviewContributions", 0
            ),
            total_repository_contributions=collection.get(
                "totalRepositoryContributions", 0
            ),
            calendar=ContributionCalendar(
                total_contributions=calendar_data["totalContributions"],
                weeks=weeks,
            ),
        )
    except (KeyError, ValueError, TypeError) as e:
        raise IncompleteDataError(f"Invalid contributions payload: {e}") from e
