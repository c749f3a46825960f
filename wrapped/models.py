"""
Data models for computed Wrapped results.

These Pydantic models define the shape of the insights record that is
persisted in the result store and served to clients. Fields are snake_case
in Python and camelCase on the wire, so stored JSON matches what the
frontend consumes.
"""

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

SOURCE_NOTE = "Data fetched from public GitHub API"

MONTH_NAMES = [
    "January",
    "February",
    "March",
    "April",
    "May",
    "June",
    "July",
    "August",
    "September",
    "October",
    "November",
    "December",
]


class WireModel(BaseModel):
    """Base model serializing to camelCase while accepting both spellings."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, frozen=True
    )


class RepoStars(WireModel):
    name: str
    stars: int


class RepoForks(WireModel):
    name: str
    forks: int


class ActivityInsights(WireModel):
    total_commits: int
    total_contributions: int
    pull_requests: int
    issues: int
    # Keyed by full month name, January..December; counts every contribution type.
    contributions_per_month: Dict[str, int]
    most_active_month: Optional[str] = None
    active_months_count: int

    @field_validator("contributions_per_month")
    @classmethod
    def order_months(cls, value: Dict[str, int]) -> Dict[str, int]:
        """Keep months in calendar order whatever order the input used."""
        ordered = {month: value[month] for month in MONTH_NAMES if month in value}
        ordered.update(
            (month, count) for month, count in value.items() if month not in ordered
        )
        return ordered


class RepositoryInsights(WireModel):
    total_public_repos: int
    repos_created_in_year: int
    most_starred_repo: Optional[RepoStars] = None


class LanguageInsights(WireModel):
    top_language: Optional[str] = None
    language_distribution: Dict[str, int]
    language_count: int
    bytes_by_language: Dict[str, int] = Field(default_factory=dict)


class BehaviorInsights(WireModel):
    weekday_contributions: int
    weekend_contributions: int


class ProfileInsights(WireModel):
    account_age_years: Optional[int] = None
    followers: int = 0
    following: int = 0
    has_bio: bool = False
    has_company: bool = False
    has_location: bool = False
    bio: Optional[str] = None
    company: Optional[str] = None
    location: Optional[str] = None


class Streak(WireModel):
    days: int
    start_date: Optional[str] = None
    end_date: Optional[str] = None


class BestDay(WireModel):
    day: str
    contributions: int


class ActiveRepo(WireModel):
    name: str
    last_push: Optional[datetime] = None


class TopicCount(WireModel):
    topic: str
    count: int


class TopicInsights(WireModel):
    top_topics: List[TopicCount]
    total_unique_topics: int
    topic_distribution: Dict[str, int]


class LicenseInsights(WireModel):
    top_license: Optional[str] = None
    license_distribution: Dict[str, int]
    no_license_count: int
    total_licensed: int


class RepositoryGrowth(WireModel):
    repos_created_in_year: int
    total_stars_from_new_repos: int
    most_starred_new_repo: Optional[RepoStars] = None


class ForkStats(WireModel):
    total_forks: int
    average_forks_per_repo: float
    most_forked_repo: Optional[RepoForks] = None


class AdvancedInsights(WireModel):
    longest_streak: Streak
    best_day_of_week: BestDay
    most_active_repository: Optional[ActiveRepo] = None
    topics: TopicInsights
    licenses: LicenseInsights
    repository_growth: RepositoryGrowth
    fork_stats: ForkStats


class WrappedInsights(WireModel):
    activity: ActivityInsights
    repositories: RepositoryInsights
    languages: LanguageInsights
    behavior: BehaviorInsights
    profile: ProfileInsights
    advanced: AdvancedInsights


class ResultSource(WireModel):
    type: str = "public"
    note: str = SOURCE_NOTE


class WrappedResult(WireModel):
    """
    The persisted, user-facing summary for one (username, year) pair.

    Created once and never updated; the store enforces the unique key.
    """

    username: str
    year: int
    generated_at: datetime
    source: ResultSource = Field(default_factory=ResultSource)
    insights: WrappedInsights
