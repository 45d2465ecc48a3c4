"""Pipeline orchestrator - ties roster, review items and transitions together.

Answers "what stage is this run in" and whether the continue action to the
disbursement/payslip stage is unlocked. The payroll service remains the
system of record; everything here is rebuilt from fresh fetches.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from enum import Enum

from payroll_review.client.base import PayrollService
from payroll_review.config import PipelinePolicy
from payroll_review.events import EventEmitter
from payroll_review.models import (
    PayrollRun,
    Reviewer,
    ReviewItem,
    ReviewStatus,
    ReviewSummary,
)
from payroll_review.services.review_items import ReviewItemStore
from payroll_review.services.review_service import ReviewService, TransitionResult
from payroll_review.services.roster import RosterService
from payroll_review.services.state_machine import ApprovalStateMachine

logger = logging.getLogger(__name__)


class PipelineState(str, Enum):
    """Where a payroll run stands in the review pipeline."""

    NO_REVIEWERS = "no_reviewers"
    IN_REVIEW = "in_review"
    HAS_REJECTIONS = "has_rejections"
    FULLY_APPROVED = "fully_approved"


@dataclass(frozen=True)
class StageGate:
    """Whether the continue-to-disbursement action is enabled, and why."""

    enabled: bool
    state: PipelineState
    reason: str
    overall_completion: int = 0
    configure_reviewers: bool = False


def pipeline_state_of(items: list[ReviewItem]) -> PipelineState:
    """Classify a run from its review items.

    A run with no review items has no reviewers configured; it is never
    treated as trivially approved.
    """
    reviewable = [item for item in items if item.is_reviewable]
    if not reviewable:
        return PipelineState.NO_REVIEWERS
    if all(item.status == ReviewStatus.APPROVED for item in reviewable):
        return PipelineState.FULLY_APPROVED
    if any(item.status == ReviewStatus.REJECTED for item in reviewable):
        return PipelineState.HAS_REJECTIONS
    return PipelineState.IN_REVIEW


class PipelineOrchestrator:
    """Coordinates the reviewer roster and review items of payroll runs.

    Usage:
        orchestrator = PipelineOrchestrator(service, policy=settings.policy)
        summary = await orchestrator.review_summary(run_id)
        gate = await orchestrator.unlock_next_stage(run_id)
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
        self.roster = RosterService(service, self.emitter, actor_id)
        self.reviews = ReviewService(service, self.policy, self.emitter, actor_id)
        self._stores: dict[str, ReviewItemStore] = {}
        self._runs: dict[str, PayrollRun] = {}

    async def reviewers_in_order(self) -> list[Reviewer]:
        """Reviewers ascending by level.

        Display order only: unless ``enforce_sequential_approval`` is set,
        nothing stops a later level from acting first.
        """
        roster = await self.roster.refresh()
        return roster.in_order()

    async def load_items(self, payroll_run_id: str, reviewer_level: int | None = None) -> ReviewItemStore:
        """Fetch a run's items, keeping the last acting level when none is given."""
        store = self._stores.get(payroll_run_id)
        if store is None:
            store = self._stores[payroll_run_id] = ReviewItemStore(self.service)
        if reviewer_level is None:
            reviewer_level = store.reviewer_level
        await store.load(payroll_run_id, reviewer_level)
        return store

    async def payroll_run(self, payroll_run_id: str) -> PayrollRun:
        """Run metadata, fetched once per orchestrator."""
        run = self._runs.get(payroll_run_id)
        if run is None:
            summary = await self.service.get_review_summary(payroll_run_id)
            run = self._runs[payroll_run_id] = summary.payroll_run
        return run

    async def pipeline_state(self, payroll_run_id: str) -> PipelineState:
        store = await self.load_items(payroll_run_id)
        return pipeline_state_of(store.items)

    async def is_run_fully_approved(self, payroll_run_id: str) -> bool:
        """True iff the run has review items and all of them are approved."""
        return await self.pipeline_state(payroll_run_id) == PipelineState.FULLY_APPROVED

    async def review_summary(self, payroll_run_id: str, prefer_backend: bool = True) -> ReviewSummary:
        """Per-reviewer progress of a run.

        Backend aggregates win whenever the backend reports any steps; the
        local recomputation from items and roster is only used when it
        does not (or when ``prefer_backend`` is False), so the two never
        drift side by side.
        """
        summary = await self.service.get_review_summary(payroll_run_id)
        self._runs[payroll_run_id] = summary.payroll_run
        if prefer_backend and summary.steps:
            return summary

        store = await self.load_items(payroll_run_id)
        roster = await self.roster.current()
        return ReviewSummary(
            payroll_run=summary.payroll_run,
            steps=ApprovalStateMachine.summarize(store.items, roster.in_order()),
            source="local",
            item_progress=ApprovalStateMachine.progress_from_items(store.items),
        )

    async def unlock_next_stage(self, payroll_run_id: str) -> StageGate:
        """Whether the continue-to-disbursement action is enabled.

        The action is always reachable unless ``gate_next_stage_on_approval``
        is set, in which case only fully approved runs may continue.
        """
        store = await self.load_items(payroll_run_id)
        state = pipeline_state_of(store.items)
        progress = ApprovalStateMachine.progress_from_items(store.items)

        if state == PipelineState.NO_REVIEWERS:
            reason = "No reviewers configured for this payroll run"
        elif state == PipelineState.FULLY_APPROVED:
            reason = "All items approved"
        elif state == PipelineState.HAS_REJECTIONS:
            reason = f"{progress.rejected_items} item(s) rejected"
        else:
            reason = f"{progress.pending_items} item(s) pending review"

        enabled = True
        if self.policy.gate_next_stage_on_approval:
            enabled = state == PipelineState.FULLY_APPROVED

        return StageGate(
            enabled=enabled,
            state=state,
            reason=reason,
            overall_completion=progress.overall_completion,
            configure_reviewers=state == PipelineState.NO_REVIEWERS,
        )

    async def disbursement_items(self, payroll_run_id: str) -> list[ReviewItem]:
        """Approved items only; the input to disbursement and payslips."""
        store = await self.load_items(payroll_run_id)
        return store.require_approved(store.approved_items())

    async def transition(
        self,
        payroll_run_id: str,
        review_id: str,
        to_status: ReviewStatus | str,
        reviewer_level: int | None = None,
    ) -> TransitionResult:
        """Move a review item to a new status, then re-fetch the run.

        A request for the status the acting reviewer already holds returns
        without any further backend call.
        """
        store = self._stores.get(payroll_run_id)
        if store is None:
            store = await self.load_items(payroll_run_id, reviewer_level)

        item = store.get(review_id)
        if item is not None and ApprovalStateMachine.is_noop(
            item.acting_status, ApprovalStateMachine.parse_status(to_status)
        ):
            return await self.reviews.transition(
                store, review_id, to_status, reviewer_level=reviewer_level
            )

        roster = await self.roster.current()
        steps = None
        if self.policy.enforce_sequential_approval:
            summary = await self.service.get_review_summary(payroll_run_id)
            self._runs[payroll_run_id] = summary.payroll_run
            steps = summary.steps

        reviewers = roster.in_order()
        result = await self.reviews.transition(
            store,
            review_id,
            to_status,
            reviewers=reviewers,
            payroll_run=await self.payroll_run(payroll_run_id),
            reviewer_level=reviewer_level,
            steps=steps,
        )
        if not result.applied:
            return result

        await store.reload()
        after = None
        if result.before is not None:
            after = ApprovalStateMachine.summarize_level(
                store.items, result.before.reviewer_level, reviewers
            )
        return replace(
            result,
            item=store.get(review_id) or result.item,
            after=after,
            progress=ApprovalStateMachine.progress_from_items(store.items),
        )
