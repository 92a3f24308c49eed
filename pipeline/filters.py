"""
Filter Engine — keyword relevance filtering. Deterministic, no side effects.
"""

from typing import Iterable

from models.config import FilterRules
from models.posting import Posting


def _contains_any(text: str, keywords: list[str]) -> bool:
    return any(keyword.lower() in text for keyword in keywords)


def matches(posting: Posting, rules: FilterRules) -> bool:
    """
    Decide whether a posting passes the rule set.

    Roles and exclusions are matched against the title, locations against
    the location; all case-insensitive substring matches. An exclusion hit
    rejects the posting even when a role keyword also matches.
    """
    title = posting.title.lower()
    location = posting.location.lower()

    if rules.exclude and _contains_any(title, rules.exclude):
        return False
    if rules.roles and not _contains_any(title, rules.roles):
        return False
    if rules.locations and not _contains_any(location, rules.locations):
        return False
    return True


def filter_postings(postings: Iterable[Posting], rules: FilterRules) -> list[Posting]:
    """Keep only matching postings, preserving order."""
    return [posting for posting in postings if matches(posting, rules)]
