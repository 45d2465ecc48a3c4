"""Review service - applies status transitions to review items."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable

from payroll_review.client.base import PayrollService
from payroll_review.config import PipelinePolicy
from payroll_review.errors import InvalidOperationError, NotFoundError
from payroll_review.events import EventEmitter, EventMetadata, ReviewStatusChanged
from payroll_review.models import (
    PayrollRun,
    Reviewer,
    ReviewItem,
    ReviewStatus,
    ReviewStepSummary,
    RunProgress,
)
from payroll_review.services.review_items import ReviewItemStore
from payroll_review.services.state_machine import ApprovalStateMachine

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TransitionResult:
    """Outcome of a status transition.

    ``before``/``after`` are the acting level's summaries around the change
    (None without a level context). The aggregate counts only move once the
    run is re-fetched. ``applied`` is False for no-ops and for responses that
    arrived after the store moved on.
    """

    item: ReviewItem
    before: ReviewStepSummary | None
    after: ReviewStepSummary | None
    progress: RunProgress
    applied: bool


class ReviewService:
    """Service for moving review items between statuses.

    Operations:
    - transition: validate, persist, then update the local store and
      recompute the level summary and run progress
    """

    def __init__(
        self,
        service: PayrollService,
        policy: PipelinePolicy | None = None,
        emitter: EventEmitter | None = None,
        actor_id: str | None = None,
    ):
        self.service = service
        self.policy = policy or PipelinePolicy()
        self.emitter = emitter or EventEmitter()
        self.actor_id = actor_id
        self._in_flight: set[str] = set()

    async def transition(
        self,
        store: ReviewItemStore,
        review_id: str,
        to_status: ReviewStatus | str,
        reviewers: Iterable[Reviewer] | None = None,
        payroll_run: PayrollRun | None = None,
        reviewer_level: int | None = None,
        steps: Iterable[ReviewStepSummary] | None = None,
    ) -> TransitionResult:
        """Move one review item to a new status for the acting reviewer.

        ``reviewer_level`` is the acting reviewer's level; it defaults to the
        item's or the store's level. ``steps`` are the backend's per-level
        aggregates, used by the sequential approval check in preference to
        counting local items.

        Raises InvalidTransitionError / InvalidOperationError if the move is
        not allowed, and UpdateFailedError (or AuthError, NotFoundError,
        NetworkError) if the payroll service does not accept it. On failure
        the store keeps the item's last known-good status.
        """
        item = store.get(review_id)
        if item is None:
            raise NotFoundError(f"Review {review_id} is not part of this run")

        target = ApprovalStateMachine.validate_transition(item, to_status)
        reviewers = list(reviewers or [])
        level = reviewer_level if reviewer_level is not None else item.reviewer_level
        if level is None:
            level = store.reviewer_level
        before = self._level_summary(store.items, level, reviewers)

        current = item.acting_status
        if ApprovalStateMachine.is_noop(current, target):
            return TransitionResult(
                item=item,
                before=before,
                after=before,
                progress=ApprovalStateMachine.progress_from_items(store.items),
                applied=False,
            )

        if payroll_run is not None and not payroll_run.accepts_reviews:
            raise InvalidOperationError(
                f"Payroll run {payroll_run.payroll_number or payroll_run.payroll_run_id} "
                f"is {payroll_run.status} and no longer accepts review changes"
            )
        self._check_sequence(store.items, level, reviewers, steps)

        if review_id in self._in_flight:
            raise InvalidOperationError("An update for this item is already in progress")

        run_id = store.payroll_run_id or item.payroll_run_id
        generation = store.generation
        self._in_flight.add(review_id)
        try:
            await self._persist_status(review_id, target)
        except NotFoundError:
            logger.warning("Review %s vanished; reloading run %s", review_id, run_id)
            await store.reload()
            raise
        finally:
            self._in_flight.discard(review_id)

        updated = store.apply_status(review_id, target, run_id, generation)
        reopened = ApprovalStateMachine.is_reopen(current, target)
        logger.info(
            "Review %s on run %s: %s -> %s%s",
            review_id,
            run_id,
            current.value,
            target.value,
            " (reopened)" if reopened else "",
        )
        self.emitter.emit(
            ReviewStatusChanged(
                EventMetadata.create(self.service.company_id, self.actor_id),
                payroll_run_id=run_id,
                review_id=review_id,
                from_status=current.value,
                to_status=target.value,
                reviewer_level=level,
                reopened=reopened,
            )
        )

        return TransitionResult(
            item=updated or item,
            before=before,
            after=self._level_summary(store.items, level, reviewers),
            progress=ApprovalStateMachine.progress_from_items(store.items),
            applied=updated is not None,
        )

    async def _persist_status(self, review_id: str, status: ReviewStatus) -> None:
        # Last write wins; a version/ETag precondition belongs here.
        await self.service.update_review_status(review_id, status)

    def _check_sequence(
        self,
        items: list[ReviewItem],
        level: int | None,
        reviewers: list[Reviewer],
        steps: Iterable[ReviewStepSummary] | None,
    ) -> None:
        if not self.policy.enforce_sequential_approval or level is None:
            return
        # Prepare rows carry one review per employee, so lower levels only
        # show up in the backend aggregates.
        steps = list(steps or []) or ApprovalStateMachine.summarize(items, reviewers)
        if not ApprovalStateMachine.is_level_unblocked(steps, level):
            raise InvalidOperationError(
                f"Level {level} must wait until earlier levels finish approving"
            )

    @staticmethod
    def _level_summary(
        items: list[ReviewItem],
        level: int | None,
        reviewers: list[Reviewer],
    ) -> ReviewStepSummary | None:
        if level is None:
            return None
        return ApprovalStateMachine.summarize_level(items, level, reviewers)
