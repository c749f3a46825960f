"""
Display model and commentary for a stored Wrapped result.

Everything here is cosmetic: it reshapes a WrappedResult for rendering and
picks canned text. No statistics are computed that the insight engine does
not already provide.
"""

import random
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from .insights import MONTH_NAMES
from .models import WrappedResult

MAX_HIGHLIGHTS = 8

CATEGORY_PRIORITY = {
    "consistency": 0,
    "activity": 1,
    "behavior": 2,
    "language": 3,
    "repository": 4,
}

# (exclusive upper bound, quote); the final entry catches everything above.
CONTRIBUTION_QUOTES = [
    (1, "🦗 The GitHub void has spoken... and it's deafening silence."),
    (10, "🐣 You're learning! Slowly. Like a penguin on ice."),
    (50, "🌱 Tiny seedling energy! Your code garden is sprouting!"),
    (100, "🔥 Now we're cooking! Caffeinated squirrel levels of momentum."),
    (250, "⚡ Beast mode unlocked! That contribution graph is looking busy."),
    (500, "🤖 Are you even human? You are one with the code."),
    (1000, "🚀 Legend status achieved! Your profile is a lifestyle brand now."),
    (2000, "💎 Elite tier! Your commits have commits."),
    (5000, "👽 Are you from the future? This defies human limitations."),
    (None, "🌪️ Commit singularity achieved! You ARE the algorithm."),
]

NOT_FOUND_QUOTES = [
    "🤷 User.exe has stopped responding... did you try turning it off and on again?",
    "🔍 Houston, we have a problem: this GitHub user exists only in the quantum realm!",
    "🎪 404: GitHub user not found (maybe they're just a legend?)",
    "🪦 RIP to this username's GitHub account... it never existed!",
]


class Highlight(BaseModel):
    text: str
    category: str
    emoji: str


class NamedCount(BaseModel):
    name: str
    count: int


class MonthBar(BaseModel):
    month: str
    contributions: int


class WrappedDisplay(BaseModel):
    username: str
    year: int
    total_commits: int
    total_contributions: int
    total_repositories: int
    total_pull_requests: int
    total_issues: int
    longest_streak: int
    best_day_of_week: Optional[str] = None
    top_languages: List[NamedCount] = Field(default_factory=list)
    top_topics: List[NamedCount] = Field(default_factory=list)
    monthly_breakdown: List[MonthBar] = Field(default_factory=list)
    highlights: List[Highlight] = Field(default_factory=list)
    quote: str = ""


def quote_for_contributions(count: int) -> str:
    for bound, quote in CONTRIBUTION_QUOTES:
        if bound is None or count < bound:
            return quote
    return CONTRIBUTION_QUOTES[-1][1]


def not_found_quote(rng: random.Random = None) -> str:
    return (rng or random).choice(NOT_FOUND_QUOTES)


def _plural(count: int, word: str) -> str:
    return f"{count} {word}" if count == 1 else f"{count} {word}s"


def build_highlights(result: WrappedResult) -> List[Highlight]:
    insights = result.insights
    activity = insights.activity
    repos = insights.repositories
    languages = insights.languages
    advanced = insights.advanced
    highlights: List[Highlight] = []

    def add(text, category, emoji):
        highlights.append(Highlight(text=text, category=category, emoji=emoji))

    if activity.total_commits > 0:
        add(f"{_plural(activity.total_commits, 'commit')} recorded", "activity", "💪")
    if activity.most_active_month:
        peak = activity.contributions_per_month[activity.most_active_month]
        add(
            f"Peak in {activity.most_active_month} with "
            f"{_plural(peak, 'contribution')}",
            "activity",
            "🔥",
        )
    if activity.active_months_count > 0:
        add(
            f"Active for {_plural(activity.active_months_count, 'month')} this year",
            "activity",
            "📅",
        )

    if repos.most_starred_repo:
        add(
            f'"{repos.most_starred_repo.name}" is your star repo '
            f"({_plural(repos.most_starred_repo.stars, 'star')})",
            "repository",
            "⭐",
        )
    if repos.repos_created_in_year > 0:
        add(
            f"Created {_plural(repos.repos_created_in_year, 'repo')} this year",
            "repository",
            "🆕",
        )

    if languages.top_language:
        add(f"{languages.top_language} is your main language", "language", "🎨")
    if languages.language_count > 5:
        add("Polyglot developer! Master of many languages!", "language", "🎓")

    behavior = insights.behavior
    total = behavior.weekday_contributions + behavior.weekend_contributions
    if total > 0:
        weekday_pct = round(behavior.weekday_contributions / total * 100)
        if weekday_pct > 70:
            add(f"{weekday_pct}% of contributions on weekdays", "behavior", "💼")
        elif weekday_pct < 30:
            add(f"{100 - weekday_pct}% of contributions on weekends", "behavior", "🎉")

    if activity.total_contributions > 365:
        add("More than one contribution a day. Legendary!", "consistency", "🎯")
    elif activity.total_contributions > 100:
        add("Regular contributor. Keep the momentum!", "consistency", "🚀")

    if advanced.longest_streak.days > 0:
        add(
            f"{_plural(advanced.longest_streak.days, 'day')} streak",
            "consistency",
            "🔥",
        )
    if advanced.best_day_of_week.contributions > 0:
        add(f"{advanced.best_day_of_week.day} is your power day!", "behavior", "⚡")
    if advanced.topics.top_topics:
        add(
            f'"{advanced.topics.top_topics[0].topic}" is your favorite topic',
            "repository",
            "🏷️",
        )
    if advanced.fork_stats.most_forked_repo and advanced.fork_stats.most_forked_repo.forks:
        forked = advanced.fork_stats.most_forked_repo
        add(f'"{forked.name}" got forked {_plural(forked.forks, "time")}', "repository", "🍴")

    highlights.sort(key=lambda h: CATEGORY_PRIORITY[h.category])
    return highlights[:MAX_HIGHLIGHTS]


def build_display_model(result: WrappedResult) -> WrappedDisplay:
    insights = result.insights
    distribution: Dict[str, int] = insights.languages.language_distribution
    top_languages = sorted(distribution.items(), key=lambda item: item[1], reverse=True)

    return WrappedDisplay(
        username=result.username,
        year=result.year,
        total_commits=insights.activity.total_commits,
        total_contributions=insights.activity.total_contributions,
        total_repositories=insights.repositories.total_public_repos,
        total_pull_requests=insights.activity.pull_requests,
        total_issues=insights.activity.issues,
        longest_streak=insights.advanced.longest_streak.days,
        best_day_of_week=insights.advanced.best_day_of_week.day
        if insights.advanced.best_day_of_week.contributions
        else None,
        top_languages=[NamedCount(name=n, count=c) for n, c in top_languages[:10]],
        top_topics=[
            NamedCount(name=t.topic, count=t.count)
            for t in insights.advanced.topics.top_topics[:5]
        ],
        monthly_breakdown=[
            MonthBar(
                month=month[:3],
                contributions=insights.activity.contributions_per_month.get(month, 0),
            )
            for month in MONTH_NAMES
        ],
        highlights=build_highlights(result),
        quote=quote_for_contributions(insights.activity.total_contributions),
    )


def render_text(display: WrappedDisplay) -> str:
    """Render a display model as a plain-text card."""
    peak = max((bar.contributions for bar in display.monthly_breakdown), default=0)
    lines = [
        f"GitHub Wrapped {display.year} · @{display.username}",
        "",
        f"Contributions: {display.total_contributions}",
        f"Commits:       {display.total_commits}",
        f"Pull requests: {display.total_pull_requests}",
        f"Issues:        {display.total_issues}",
        f"Repositories:  {display.total_repositories}",
        f"Longest streak: {display.longest_streak} days",
    ]
    if display.best_day_of_week:
        lines.append(f"Power day:     {display.best_day_of_week}")
    if display.top_languages:
        lines.append(
            "Languages:     "
            + ", ".join(f"{lang.name} ({lang.count})" for lang in display.top_languages[:5])
        )

    lines.append("")
    for bar in display.monthly_breakdown:
        width = round(bar.contributions / peak * 30) if peak else 0
        lines.append(f"{bar.month} {'█' * width} {bar.contributions}")

    if display.highlights:
        lines.append("")
        lines.extend(f"{h.emoji} {h.text}" for h in display.highlights)

    lines.extend(["", display.quote])
    return "\n".join(lines)
