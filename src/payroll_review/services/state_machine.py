"""Review item state machine and progress aggregation."""

from __future__ import annotations

from collections import defaultdict
from typing import Iterable

from payroll_review.errors import InvalidOperationError
from payroll_review.models import (
    Reviewer,
    ReviewItem,
    ReviewStatus,
    ReviewStepSummary,
    RunProgress,
    completion_percentage,
)
from payroll_review.models.base import parse_enum


class InvalidTransitionError(InvalidOperationError):
    """Raised when a review item cannot take the requested status."""

    def __init__(self, from_status: str, to_status: str, reason: str | None = None):
        self.from_status = from_status
        self.to_status = to_status
        self.reason = reason
        msg = f"Invalid transition from '{from_status}' to '{to_status}'"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class ApprovalStateMachine:
    """State machine for review item status transitions.

    Allowed transitions:
    - pending → approved | rejected
    - approved → pending (reopen) | rejected
    - rejected → pending (reopen) | approved

    No status is terminal. Moving to the current status is a no-op rather
    than an error, since a concurrent refresh can race a reviewer's click.
    """

    VALID_TRANSITIONS: dict[ReviewStatus, list[ReviewStatus]] = {
        ReviewStatus.PENDING: [ReviewStatus.APPROVED, ReviewStatus.REJECTED],
        ReviewStatus.APPROVED: [ReviewStatus.PENDING, ReviewStatus.REJECTED],
        ReviewStatus.REJECTED: [ReviewStatus.PENDING, ReviewStatus.APPROVED],
    }

    # Decisions that can be re-opened back to pending
    DECIDED = {ReviewStatus.APPROVED, ReviewStatus.REJECTED}

    @classmethod
    def parse_status(cls, status: str | ReviewStatus) -> ReviewStatus:
        """Parse a requested status, raising ValidationError if unknown."""
        return parse_enum(ReviewStatus, status, "review status")

    @classmethod
    def can_transition(cls, from_status: str, to_status: str) -> bool:
        """Check if a transition is valid."""
        allowed = cls.VALID_TRANSITIONS.get(from_status, [])
        return to_status in allowed

    @classmethod
    def is_noop(cls, from_status: str, to_status: str) -> bool:
        return from_status == to_status

    @classmethod
    def is_reopen(cls, from_status: str, to_status: str) -> bool:
        """Check if this transition re-opens a decided item."""
        return from_status in cls.DECIDED and to_status == ReviewStatus.PENDING

    @classmethod
    def get_next_statuses(cls, current_status: str) -> list[ReviewStatus]:
        """Statuses offered to a reviewer; never includes the current one."""
        return list(cls.VALID_TRANSITIONS.get(current_status, []))

    @classmethod
    def validate_transition(cls, item: ReviewItem, to_status: str | ReviewStatus) -> ReviewStatus:
        """Validate a transition for an item and return the parsed target.

        The move starts from the acting reviewer's own decision, not the
        aggregate across levels. A same-status request validates fine;
        callers treat it as a no-op.
        """
        target = cls.parse_status(to_status)
        current = item.acting_status
        if not item.is_reviewable:
            raise InvalidTransitionError(
                current.value, target.value, "item is not under review"
            )
        if not cls.is_noop(current, target) and not cls.can_transition(current, target):
            raise InvalidTransitionError(current.value, target.value)
        return target

    # =========================================================================
    # Aggregation
    # =========================================================================

    @classmethod
    def completion_percentage(cls, approved: int, total: int) -> int:
        return completion_percentage(approved, total)

    @classmethod
    def summarize(
        cls,
        items: Iterable[ReviewItem],
        reviewers: Iterable[Reviewer] | None = None,
    ) -> list[ReviewStepSummary]:
        """One summary per reviewer level present among reviewable items.

        Items without a level context are left out of the per-level view;
        they still count toward ``progress_from_items``.
        """
        counts: dict[int, dict[ReviewStatus, int]] = defaultdict(
            lambda: {status: 0 for status in ReviewStatus}
        )
        for item in items:
            if item.is_reviewable and item.reviewer_level is not None:
                counts[item.reviewer_level][item.status] += 1

        by_level = {r.level: r for r in reviewers or []}
        summaries = []
        for level in sorted(counts):
            reviewer = by_level.get(level)
            level_counts = counts[level]
            summaries.append(
                ReviewStepSummary.from_counts(
                    reviewer_level=level,
                    approved=level_counts[ReviewStatus.APPROVED],
                    pending=level_counts[ReviewStatus.PENDING],
                    rejected=level_counts[ReviewStatus.REJECTED],
                    reviewer_id=reviewer.reviewer_id if reviewer else None,
                    reviewer_name=reviewer.full_name if reviewer else "",
                )
            )
        return summaries

    @classmethod
    def summarize_level(
        cls,
        items: Iterable[ReviewItem],
        level: int,
        reviewers: Iterable[Reviewer] | None = None,
    ) -> ReviewStepSummary:
        """Summary of one level; an empty level reports zeros."""
        for summary in cls.summarize(items, reviewers):
            if summary.reviewer_level == level:
                return summary
        return ReviewStepSummary.from_counts(level, 0, 0, 0)

    @classmethod
    def progress_from_items(cls, items: Iterable[ReviewItem]) -> RunProgress:
        return RunProgress.from_items(items)

    @classmethod
    def progress_from_steps(cls, steps: Iterable[ReviewStepSummary]) -> RunProgress:
        return RunProgress.from_steps(steps)

    @classmethod
    def is_level_unblocked(cls, steps: Iterable[ReviewStepSummary], level: int) -> bool:
        """True when every lower level has approved all of its items."""
        return all(
            step.approved_items == step.total_items
            for step in steps
            if step.reviewer_level < level
        )
