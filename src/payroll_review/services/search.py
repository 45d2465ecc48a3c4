"""Case-insensitive global search used by the review and allowance tables."""

from __future__ import annotations

from typing import Iterable

from payroll_review.models import Allowance


def matches_term(term: str, *fields: str | None) -> bool:
    """True if ``term`` is a substring of any field, ignoring case.

    Fields are matched independently; one hit is enough. An empty term
    matches everything.
    """
    needle = term.strip().lower()
    if not needle:
        return True
    return any(needle in value.lower() for value in fields if value)


def search_allowances(allowances: Iterable[Allowance], term: str) -> list[Allowance]:
    """Filter allowances by recipient, type name or type-specific details."""
    return [
        allowance
        for allowance in allowances
        if matches_term(
            term,
            allowance.recipient_display,
            allowance.type_name,
            *allowance.metadata.search_fields(),
        )
    ]
