"""
Insight engine: pure transformations from GitHub snapshots to WrappedInsights.

Nothing here performs I/O or mutates its inputs. Repository statistics are
computed over the retrieved repository set, which is capped and ordered by
most recently updated, so a user's oldest repositories may not be counted.
The authoritative repository total comes from the upstream count instead.
"""

import logging
from collections import Counter, defaultdict
from datetime import date, datetime, timezone
from typing import Dict, Iterable, List, Optional

from .domain import (
    ContributionDay,
    ContributionSummary,
    IncompleteDataError,
    RepositoryOverview,
    UserOverview,
    year_window,
)
from .models import (
    MONTH_NAMES,
    ActiveRepo,
    ActivityInsights,
    AdvancedInsights,
    BehaviorInsights,
    BestDay,
    ForkStats,
    LanguageInsights,
    LicenseInsights,
    ProfileInsights,
    RepoForks,
    RepoStars,
    RepositoryGrowth,
    RepositoryInsights,
    Streak,
    TopicCount,
    TopicInsights,
    WrappedInsights,
)

logger = logging.getLogger(__name__)

# 0 = Sunday .. 6 = Saturday
DAY_NAMES = [
    "Sunday",
    "Monday",
    "Tuesday",
    "Wednesday",
    "Thursday",
    "Friday",
    "Saturday",
]

MONTH_SUM_TOLERANCE = 1
TOP_TOPICS_LIMIT = 10


def sunday_first_weekday(day: date) -> int:
    """Weekday index with Sunday as 0, recomputed from the date itself."""
    return (day.weekday() + 1) % 7


def compute_insights(
    overview: UserOverview,
    contributions: ContributionSummary,
    year: int,
    now: Optional[datetime] = None,
) -> WrappedInsights:
    """
    Compute every insight group for one (username, year).

    Aborts with IncompleteDataError before producing anything if either input
    lacks its repository list or contribution calendar.
    """
    if overview is None or overview.repositories is None:
        raise IncompleteDataError(
            f"Unable to compute insights: no repository data ({year})"
        )
    if contributions is None or contributions.calendar is None:
        raise IncompleteDataError(
            f"Unable to compute insights: no contribution data ({year})"
        )

    now = now or datetime.now(timezone.utc)
    repos = list(overview.repositories)
    days = list(contributions.calendar.iter_days())

    return WrappedInsights(
        activity=compute_activity(contributions, days, year),
        repositories=compute_repositories(repos, overview.total_repositories, year),
        languages=compute_languages(repos),
        behavior=compute_behavior(days),
        profile=compute_profile(overview, now),
        advanced=AdvancedInsights(
            longest_streak=compute_longest_streak(days, year),
            best_day_of_week=compute_best_day_of_week(days),
            most_active_repository=compute_most_active_repo(repos, year),
            topics=compute_topics(repos),
            licenses=compute_licenses(repos),
            repository_growth=compute_repo_growth(repos, year),
            fork_stats=compute_fork_stats(repos),
        ),
    )


def aggregate_months(days: Iterable[ContributionDay], year: int) -> Dict[str, int]:
    """Sum contributions per month name, skipping boundary days of other years."""
    per_month = {month: 0 for month in MONTH_NAMES}
    for day in days:
        if day.date.year != year:
            continue
        per_month[MONTH_NAMES[day.date.month - 1]] += day.contribution_count
    return per_month


def compute_activity(
    contributions: ContributionSummary, days: List[ContributionDay], year: int
) -> ActivityInsights:
    per_month = aggregate_months(days, year)

    most_active_month = None
    max_contributions = 0
    for month in MONTH_NAMES:
        if per_month[month] > max_contributions:
            max_contributions = per_month[month]
            most_active_month = month

    calendar_total = contributions.calendar.total_contributions
    monthly_sum = sum(per_month.values())
    if abs(monthly_sum - calendar_total) > MONTH_SUM_TOLERANCE:
        logger.warning(
            f"⚠️ Monthly contributions sum ({monthly_sum}) doesn't match "
            f"calendar total ({calendar_total}) for year {year}"
        )

    return ActivityInsights(
        total_commits=contributions.total_commit_contributions,
        total_contributions=calendar_total,
        pull_requests=contributions.total_pull_request_contributions,
        issues=contributions.total_issue_contributions,
        contributions_per_month=per_month,
        most_active_month=most_active_month,
        active_months_count=sum(1 for count in per_month.values() if count > 0),
    )


def _in_window(moment: Optional[datetime], year: int) -> bool:
    if moment is None:
        return False
    start, end = year_window(year)
    return start <= moment <= end


def _max_by(repos: List[RepositoryOverview], key) -> Optional[RepositoryOverview]:
    """First repo with the strictly greatest key; ties keep the earliest."""
    if not repos:
        return None
    best = repos[0]
    for repo in repos[1:]:
        if key(repo) > key(best):
            best = repo
    return best


def repos_created_in_year(
    repos: List[RepositoryOverview], year: int
) -> List[RepositoryOverview]:
    return [repo for repo in repos if _in_window(repo.created_at, year)]


def compute_repositories(
    repos: List[RepositoryOverview], total_repositories: int, year: int
) -> RepositoryInsights:
    top = _max_by(repos, lambda repo: repo.stars)
    return RepositoryInsights(
        total_public_repos=total_repositories,
        repos_created_in_year=len(repos_created_in_year(repos, year)),
        most_starred_repo=RepoStars(name=top.name, stars=top.stars) if top else None,
    )


def _top_entry(distribution: Dict[str, int]) -> Optional[str]:
    # sorted() is stable, so equal counts keep first-encountered order
    ranked = sorted(distribution.items(), key=lambda item: item[1], reverse=True)
    return ranked[0][0] if ranked else None


def compute_languages(repos: List[RepositoryOverview]) -> LanguageInsights:
    distribution: Dict[str, int] = {}
    bytes_by_language: Dict[str, int] = defaultdict(int)

    for repo in repos:
        if repo.primary_language is not None:
            name = repo.primary_language.name
            distribution[name] = distribution.get(name, 0) + 1
        for language in repo.languages:
            bytes_by_language[language.name] += language.size

    return LanguageInsights(
        top_language=_top_entry(distribution),
        language_distribution=distribution,
        language_count=len(distribution),
        bytes_by_language=dict(bytes_by_language),
    )


def compute_behavior(days: Iterable[ContributionDay]) -> BehaviorInsights:
    """
    Split contributions into weekday and weekend totals.

    The upstream weekday field is ignored; the weekday is derived from the date.
    """
    weekday_total = 0
    weekend_total = 0
    for day in days:
        if sunday_first_weekday(day.date) in (0, 6):
            weekend_total += day.contribution_count
        else:
            weekday_total += day.contribution_count
    return BehaviorInsights(
        weekday_contributions=weekday_total, weekend_contributions=weekend_total
    )


def compute_profile(overview: UserOverview, now: datetime) -> ProfileInsights:
    account_age = None
    if overview.created_at is not None:
        account_age = (now - overview.created_at).days // 365

    return ProfileInsights(
        account_age_years=account_age,
        followers=overview.followers,
        following=overview.following,
        has_bio=bool(overview.bio),
        has_company=bool(overview.company),
        has_location=bool(overview.location),
        bio=overview.bio,
        company=overview.company,
        location=overview.location,
    )


def compute_longest_streak(days: Iterable[ContributionDay], year: int) -> Streak:
    longest = 0
    current = 0
    current_start: Optional[date] = None
    longest_start: Optional[date] = None
    longest_end: Optional[date] = None

    for day in days:
        if day.date.year != year:
            continue
        if day.contribution_count > 0:
            if current == 0:
                current_start = day.date
            current += 1
            if current > longest:
                longest = current
                longest_start = current_start
                longest_end = day.date
        else:
            current = 0
            current_start = None

    return Streak(
        days=longest,
        start_date=longest_start.isoformat() if longest_start else None,
        end_date=longest_end.isoformat() if longest_end else None,
    )


def compute_best_day_of_week(days: Iterable[ContributionDay]) -> BestDay:
    """
    Weekday with the most contributions across the whole fetched calendar.

    Unlike month aggregation this does not drop boundary days from adjacent
    years; the fetch window already bounds the calendar.
    """
    totals = [0] * 7
    for day in days:
        totals[sunday_first_weekday(day.date)] += day.contribution_count

    best = 0
    for index in range(1, 7):
        if totals[index] > totals[best]:
            best = index
    return BestDay(day=DAY_NAMES[best], contributions=totals[best])


def compute_most_active_repo(
    repos: List[RepositoryOverview], year: int
) -> Optional[ActiveRepo]:
    pushed = [repo for repo in repos if _in_window(repo.pushed_at, year)]
    latest = _max_by(pushed, lambda repo: repo.pushed_at)
    if latest is None:
        return None
    return ActiveRepo(name=latest.name, last_push=latest.pushed_at)


def compute_topics(repos: List[RepositoryOverview]) -> TopicInsights:
    distribution = Counter()
    for repo in repos:
        distribution.update(repo.topics)

    # most_common() orders ties by first insertion
    top = [
        TopicCount(topic=name, count=count)
        for name, count in distribution.most_common(TOP_TOPICS_LIMIT)
    ]
    return TopicInsights(
        top_topics=top,
        total_unique_topics=len(distribution),
        topic_distribution=dict(distribution),
    )


def compute_licenses(repos: List[RepositoryOverview]) -> LicenseInsights:
    distribution: Dict[str, int] = {}
    no_license = 0
    for repo in repos:
        if repo.license is None:
            no_license += 1
            continue
        name = repo.license.display_name
        distribution[name] = distribution.get(name, 0) + 1

    return LicenseInsights(
        top_license=_top_entry(distribution),
        license_distribution=distribution,
        no_license_count=no_license,
        total_licensed=sum(distribution.values()),
    )


def compute_repo_growth(repos: List[RepositoryOverview], year: int) -> RepositoryGrowth:
    created = repos_created_in_year(repos, year)
    top = _max_by(created, lambda repo: repo.stars)
    return RepositoryGrowth(
        repos_created_in_year=len(created),
        total_stars_from_new_repos=sum(repo.stars for repo in created),
        most_starred_new_repo=RepoStars(name=top.name, stars=top.stars) if top else None,
    )


def compute_fork_stats(repos: List[RepositoryOverview]) -> ForkStats:
    total_forks = sum(repo.forks for repo in repos)
    top = _max_by(repos, lambda repo: repo.forks)
    return ForkStats(
        total_forks=total_forks,
        average_forks_per_repo=total_forks / len(repos) if repos else 0.0,
        most_forked_repo=RepoForks(name=top.name, forks=top.forks) if top else None,
    )
