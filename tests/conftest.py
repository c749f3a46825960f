"""
pytest configuration for GitHub Wrapped tests.

This file configures:
1. Test markers for different test types
2. Builders for raw GitHub payloads and domain objects
"""

from datetime import date, timedelta

import pytest

from wrapped.domain import (
    ContributionCalendar,
    ContributionDay,
    ContributionSummary,
    ContributionWeek,
    Language,
    RepositoryOverview,
    UserOverview,
    parse_github_datetime,
)


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "unit: mark test as a unit test")
    config.addinivalue_line("markers", "integration: mark test as an integration test")
    config.addinivalue_line("markers", "slow: mark test as slow running")


def make_repo(name, stars=0, language=None, created_at=None, **kwargs):
    """Build a RepositoryOverview with terse arguments."""
    return RepositoryOverview(
        name=name,
        stars=stars,
        primary_language=Language(name=language) if language else None,
        created_at=parse_github_datetime(created_at),
        pushed_at=parse_github_datetime(kwargs.pop("pushed_at", None)),
        **kwargs,
    )


def make_overview(repos, total=None, **kwargs):
    return UserOverview(
        login=kwargs.pop("login", "octocat"),
        total_repositories=len(repos) if total is None else total,
        repositories=repos,
        **kwargs,
    )


def make_calendar(counts, start, total=None):
    """
    Build a ContributionSummary from consecutive daily counts.

    Days are chunked into weeks of seven; ``total`` defaults to the sum.
    """
    days = [
        ContributionDay(date=start + timedelta(days=i), contribution_count=count)
        for i, count in enumerate(counts)
    ]
    weeks = tuple(
        ContributionWeek(days=tuple(days[i : i + 7])) for i in range(0, len(days), 7)
    )
    return ContributionSummary(
        total_commit_contributions=sum(counts),
        calendar=ContributionCalendar(
            total_contributions=sum(counts) if total is None else total,
            weeks=weeks,
        ),
    )


def make_day_map(day_counts, total=None):
    """Build a ContributionSummary from a {date: count} mapping."""
    days = tuple(
        ContributionDay(date=d, contribution_count=c)
        for d, c in sorted(day_counts.items())
    )
    return ContributionSummary(
        calendar=ContributionCalendar(
            total_contributions=sum(day_counts.values()) if total is None else total,
            weeks=(ContributionWeek(days=days),),
        )
    )


@pytest.fixture
def repository_node():
    """A fully populated repository node as returned by the overview query."""
    return {
        "name": "hello-world",
        "description": "My first repository",
        "stargazerCount": 42,
        "forkCount": 7,
        "watchers": {"totalCount": 3},
        "createdAt": "2023-03-01T12:00:00Z",
        "updatedAt": "2023-11-20T08:00:00Z",
        "pushedAt": "2023-11-19T22:15:00Z",
        "isArchived": False,
        "isPrivate": False,
        "diskUsage": 512,
        "primaryLanguage": {"name": "Go", "color": "#00ADD8"},
        "languages": {
            "totalSize": 1500,
            "edges": [
                {"size": 1200, "node": {"name": "Go", "color": "#00ADD8"}},
                {"size": 300, "node": {"name": "Shell", "color": "#89e051"}},
            ],
        },
        "licenseInfo": {"name": "MIT License", "spdxId": "MIT"},
        "repositoryTopics": {
            "nodes": [{"topic": {"name": "cli"}}, {"topic": {"name": "golang"}}]
        },
    }


@pytest.fixture
def overview_page(repository_node):
    """Factory for a single page of the overview query's ``data`` object."""

    def build(nodes=None, has_next=False, cursor="cursor-1", total=None):
        nodes = [repository_node] if nodes is None else nodes
        return {
            "user": {
                "login": "octocat",
                "createdAt": "2011-01-25T18:44:36Z",
                "bio": "There once was...",
                "company": "@github",
                "location": None,
                "followers": {"totalCount": 100},
                "following": {"totalCount": 5},
                "repositories": {
                    "totalCount": len(nodes) if total is None else total,
                    "pageInfo": {"endCursor": cursor, "hasNextPage": has_next},
                    "nodes": nodes,
                },
            }
        }

    return build


@pytest.fixture
def contributions_data():
    """The contributions query's ``data`` object with two short weeks."""
    return {
        "user": {
            "contributionsCollection": {
                "totalCommitContributions": 8,
                "totalRepositoryContributions": 1,
                "totalIssueContributions": 2,
                "totalPullRequestContributions": 3,
                "totalPullRequestReviewContributions": 1,
                "contributionCalendar": {
                    "totalContributions": 15,
                    "weeks": [
                        {
                            "contributionDays": [
                                {"contributionCount": 0, "date": "2023-01-01", "weekday": 0},
                                {"contributionCount": 4, "date": "2023-01-02", "weekday": 1},
                            ]
                        },
                        {
                            "contributionDays": [
                                {"contributionCount": 11, "date": "2023-03-15", "weekday": 3},
                            ]
                        },
                    ],
                },
            }
        }
    }


@pytest.fixture
def jan_first():
    return date(2023, 1, 1)
