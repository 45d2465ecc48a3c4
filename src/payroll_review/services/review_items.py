"""Per-employee review items of one payroll run."""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Iterable

from payroll_review.client.base import PayrollService
from payroll_review.errors import InvalidOperationError
from payroll_review.models import ReviewItem, ReviewStatus
from payroll_review.models.base import parse_enum
from payroll_review.services.search import matches_term

logger = logging.getLogger(__name__)


class ReviewItemStore:
    """Transient, refreshable copy of a run's review items.

    Every completed ``load`` bumps ``generation``. Responses to operations
    started under an older generation, or for a different run, are discarded
    rather than applied, so a late reply never overwrites a fresher view. A
    failed fetch leaves the generation alone.
    """

    def __init__(self, service: PayrollService):
        self.service = service
        self.payroll_run_id: str | None = None
        self.reviewer_level: int | None = None
        self.generation = 0
        self._requests = 0
        self._items: tuple[ReviewItem, ...] = ()

    async def load(self, payroll_run_id: str, reviewer_level: int | None = None) -> list[ReviewItem]:
        """Fetch all items for a run.

        Items without a level of their own take the acting reviewer's level.
        """
        self._requests += 1
        request = self._requests
        items = await self.service.list_review_items(payroll_run_id)

        if request != self._requests:
            logger.debug("Discarding stale load of run %s", payroll_run_id)
            return list(self._items)

        if reviewer_level is not None:
            items = [
                replace(item, reviewer_level=reviewer_level) if item.reviewer_level is None else item
                for item in items
            ]
        self.generation += 1
        self.payroll_run_id = payroll_run_id
        self.reviewer_level = reviewer_level
        self._items = tuple(items)
        logger.debug("Loaded %d review items for run %s", len(items), payroll_run_id)
        return list(self._items)

    async def reload(self) -> list[ReviewItem]:
        """Re-fetch the current run, keeping the acting level."""
        if self.payroll_run_id is None:
            raise InvalidOperationError("No payroll run loaded")
        return await self.load(self.payroll_run_id, self.reviewer_level)

    @property
    def items(self) -> list[ReviewItem]:
        return list(self._items)

    @property
    def reviewable_items(self) -> list[ReviewItem]:
        """Items under review; the only ones exposing an approval action."""
        return [item for item in self._items if item.is_reviewable]

    def get(self, review_id: str) -> ReviewItem | None:
        for item in self._items:
            if item.review_id == review_id:
                return item
        return None

    def filter_by_status(self, status: ReviewStatus | str) -> list[ReviewItem]:
        wanted = parse_enum(ReviewStatus, status, "review status")
        return [item for item in self._items if item.status == wanted]

    def approved_items(self) -> list[ReviewItem]:
        """Items eligible for disbursement and payslip distribution."""
        return self.filter_by_status(ReviewStatus.APPROVED)

    @staticmethod
    def require_approved(items: Iterable[ReviewItem]) -> list[ReviewItem]:
        """Guard for consumers that must only ever see approved items."""
        items = list(items)
        rejected = [item for item in items if item.status != ReviewStatus.APPROVED]
        if rejected:
            names = ", ".join(item.full_name or item.employee_id for item in rejected[:5])
            raise InvalidOperationError(
                f"{len(rejected)} item(s) are not approved: {names}"
            )
        return items

    def global_search(self, term: str, status: ReviewStatus | str | None = None) -> list[ReviewItem]:
        """Items matching ``term`` by name, job title, department or employee id.

        ``status`` further restricts the result to one review status.
        """
        items = self.filter_by_status(status) if status else self._items
        return [
            item
            for item in items
            if matches_term(term, item.full_name, item.job_title, item.department, item.employee_id)
        ]

    def apply_status(
        self,
        review_id: str,
        status: ReviewStatus,
        payroll_run_id: str,
        generation: int,
    ) -> ReviewItem | None:
        """Record the acting reviewer's persisted decision.

        Only ``my_status`` changes; the aggregate ``status`` spans every
        level and is left to the next fetch.

        Returns the updated item, or None when the store has since moved on
        to another run or reload and the change must not be applied here.
        """
        if payroll_run_id != self.payroll_run_id or generation != self.generation:
            logger.debug("Discarding stale status update for review %s", review_id)
            return None

        updated: ReviewItem | None = None
        items = []
        for item in self._items:
            if item.review_id == review_id:
                item = replace(item, my_status=status)
                updated = item
            items.append(item)
        self._items = tuple(items)
        return updated
