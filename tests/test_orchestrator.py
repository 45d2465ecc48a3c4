"""Tests for the pipeline orchestrator and stage gating."""

import pytest

from payroll_review.config import PipelinePolicy
from payroll_review.errors import InvalidOperationError
from payroll_review.models import PayrollRun, ReviewStatus, ReviewStepSummary, ReviewSummary
from payroll_review.services import PipelineOrchestrator, PipelineState, pipeline_state_of

from tests.conftest import RUN_ID, FakePayrollService, backend_summary, make_item


class TestPipelineState:
    """Test run classification."""

    def test_no_items_means_no_reviewers(self):
        assert pipeline_state_of([]) == PipelineState.NO_REVIEWERS

    def test_only_unreviewable_items(self):
        assert pipeline_state_of([make_item(None)]) == PipelineState.NO_REVIEWERS

    def test_fully_approved(self):
        items = [make_item("a", ReviewStatus.APPROVED), make_item(None)]
        assert pipeline_state_of(items) == PipelineState.FULLY_APPROVED

    def test_rejections_win_over_pending(self):
        items = [make_item("a", ReviewStatus.REJECTED), make_item("b", ReviewStatus.PENDING)]
        assert pipeline_state_of(items) == PipelineState.HAS_REJECTIONS

    def test_in_review(self):
        items = [make_item("a", ReviewStatus.APPROVED), make_item("b", ReviewStatus.PENDING)]
        assert pipeline_state_of(items) == PipelineState.IN_REVIEW


class TestPipelineOrchestrator:
    """Test orchestration over a fake backend."""

    async def test_reviewers_in_order(self, service: FakePayrollService):
        reviewers = await PipelineOrchestrator(service).reviewers_in_order()
        assert [r.level for r in reviewers] == [1, 2, 3]

    async def test_empty_run_is_not_fully_approved(self, service: FakePayrollService):
        """A run without review items is never trivially complete."""
        service.items[RUN_ID] = []
        orchestrator = PipelineOrchestrator(service)

        assert await orchestrator.is_run_fully_approved(RUN_ID) is False
        gate = await orchestrator.unlock_next_stage(RUN_ID)
        assert gate.overall_completion == 0
        assert gate.state == PipelineState.NO_REVIEWERS
        assert gate.configure_reviewers is True

    async def test_overall_completion(self, service: FakePayrollService):
        """Four approved of ten is 40%."""
        service.items[RUN_ID] = [make_item(f"a{i}", ReviewStatus.APPROVED) for i in range(4)] + [
            make_item(f"p{i}", ReviewStatus.PENDING) for i in range(6)
        ]

        gate = await PipelineOrchestrator(service).unlock_next_stage(RUN_ID)

        assert gate.overall_completion == 40
        assert gate.state == PipelineState.IN_REVIEW
        assert gate.reason == "6 item(s) pending review"

    async def test_gate_open_by_default(self, seeded_run: FakePayrollService):
        gate = await PipelineOrchestrator(seeded_run).unlock_next_stage(RUN_ID)
        assert gate.enabled is True
        assert gate.state == PipelineState.HAS_REJECTIONS

    async def test_gate_policy_requires_full_approval(self, seeded_run: FakePayrollService):
        policy = PipelinePolicy(gate_next_stage_on_approval=True)
        orchestrator = PipelineOrchestrator(seeded_run, policy=policy)

        assert (await orchestrator.unlock_next_stage(RUN_ID)).enabled is False

        for review_id in ("rv-2", "rv-3", "rv-4"):
            await orchestrator.transition(RUN_ID, review_id, "APPROVED")

        gate = await orchestrator.unlock_next_stage(RUN_ID)
        assert gate.enabled is True
        assert gate.state == PipelineState.FULLY_APPROVED
        assert await orchestrator.is_run_fully_approved(RUN_ID) is True

    async def test_disbursement_only_sees_approved(self, seeded_run: FakePayrollService):
        items = await PipelineOrchestrator(seeded_run).disbursement_items(RUN_ID)
        assert [i.review_id for i in items] == ["rv-1"]

    async def test_review_summary_prefers_backend(self, seeded_run: FakePayrollService):
        run = PayrollRun(RUN_ID, "January", 2026, "PR-0001", "UNDER_REVIEW")
        backend_step = ReviewStepSummary.from_counts(1, approved=9, pending=1, rejected=0)
        seeded_run.summaries[RUN_ID] = ReviewSummary(run, [backend_step])

        summary = await PipelineOrchestrator(seeded_run).review_summary(RUN_ID)

        assert summary.source == "backend"
        assert summary.steps == [backend_step]
        assert seeded_run.calls_to("list_review_items") == []

    async def test_review_summary_local_fallback(self, seeded_run: FakePayrollService):
        summary = await PipelineOrchestrator(seeded_run).review_summary(RUN_ID)

        assert summary.source == "local"
        assert [s.reviewer_level for s in summary.steps] == [1, 2]
        assert [s.reviewer_name for s in summary.steps] == ["Alice", "Bob"]
        assert summary.steps[0].completion_percentage == 50
        assert summary.progress.total_items == 4

    async def test_review_summary_local_on_request(self, seeded_run: FakePayrollService):
        run = PayrollRun(RUN_ID, "January", 2026, "PR-0001", "UNDER_REVIEW")
        backend_step = ReviewStepSummary.from_counts(1, approved=9, pending=1, rejected=0)
        seeded_run.summaries[RUN_ID] = ReviewSummary(run, [backend_step])

        summary = await PipelineOrchestrator(seeded_run).review_summary(RUN_ID, prefer_backend=False)

        assert summary.source == "local"
        assert summary.payroll_run == run

    async def test_transition_rejected_on_paid_run(self, seeded_run: FakePayrollService):
        seeded_run.runs[RUN_ID] = PayrollRun(RUN_ID, "January", 2026, "PR-0001", "PAID")
        orchestrator = PipelineOrchestrator(seeded_run)

        with pytest.raises(InvalidOperationError):
            await orchestrator.transition(RUN_ID, "rv-2", "APPROVED")

    async def test_transition_refetches_run(self, seeded_run: FakePayrollService):
        orchestrator = PipelineOrchestrator(seeded_run)

        result = await orchestrator.transition(RUN_ID, "rv-2", "APPROVED", reviewer_level=1)

        assert result.applied is True
        assert result.after.completion_percentage == 100
        assert len(seeded_run.calls_to("list_review_items")) == 2

    async def test_noop_transition_makes_no_backend_call(self, prepare_run: FakePayrollService):
        """Re-sending the reviewer's own decision needs neither roster nor run metadata."""
        orchestrator = PipelineOrchestrator(prepare_run)
        await orchestrator.load_items(RUN_ID)
        calls_before = len(prepare_run.calls)

        result = await orchestrator.transition(RUN_ID, "rv-1", "APPROVED")

        assert result.applied is False
        assert prepare_run.calls[calls_before:] == []

    async def test_transition_result_reflects_refetch(self, prepare_run: FakePayrollService):
        orchestrator = PipelineOrchestrator(prepare_run)

        result = await orchestrator.transition(RUN_ID, "rv-4", "APPROVED", reviewer_level=2)

        assert result.applied is True
        assert result.item.status == ReviewStatus.APPROVED
        assert result.after.reviewer_level == 2
        assert result.after.completion_percentage == 50
        assert result.progress.approved_items == 2


class TestSequentialApproval:
    """Test level precedence against the backend's per-level aggregates."""

    @pytest.fixture
    def orchestrator(self, prepare_run: FakePayrollService) -> PipelineOrchestrator:
        policy = PipelinePolicy(enforce_sequential_approval=True)
        return PipelineOrchestrator(prepare_run, policy=policy)

    async def test_blocks_level_two_while_level_one_pending(
        self, prepare_run: FakePayrollService, orchestrator: PipelineOrchestrator
    ):
        prepare_run.summaries[RUN_ID] = backend_summary((1, 0, 2, 0), (2, 0, 2, 0))
        await orchestrator.load_items(RUN_ID)

        with pytest.raises(InvalidOperationError):
            await orchestrator.transition(RUN_ID, "rv-2", "APPROVED", reviewer_level=2)
        assert prepare_run.mutation_calls == []

    async def test_level_one_may_act(
        self, prepare_run: FakePayrollService, orchestrator: PipelineOrchestrator
    ):
        prepare_run.summaries[RUN_ID] = backend_summary((1, 0, 2, 0), (2, 0, 2, 0))

        result = await orchestrator.transition(RUN_ID, "rv-2", "APPROVED", reviewer_level=1)

        assert result.applied is True

    async def test_allows_level_two_once_level_one_done(
        self, prepare_run: FakePayrollService, orchestrator: PipelineOrchestrator
    ):
        prepare_run.summaries[RUN_ID] = backend_summary((1, 2, 0, 0), (2, 0, 2, 0))

        result = await orchestrator.transition(RUN_ID, "rv-2", "APPROVED", reviewer_level=2)

        assert result.applied is True

    async def test_query_paths_keep_acting_level(
        self, prepare_run: FakePayrollService, orchestrator: PipelineOrchestrator
    ):
        prepare_run.summaries[RUN_ID] = backend_summary((1, 0, 2, 0), (2, 0, 2, 0))
        store = await orchestrator.load_items(RUN_ID, reviewer_level=2)

        await orchestrator.unlock_next_stage(RUN_ID)
        await orchestrator.is_run_fully_approved(RUN_ID)
        assert store.reviewer_level == 2

        with pytest.raises(InvalidOperationError):
            await orchestrator.transition(RUN_ID, "rv-2", "APPROVED")


class TestLocalSummary:
    """Test the locally computed review summary on level-less rows."""

    @pytest.fixture
    def unleveled(self, service: FakePayrollService) -> FakePayrollService:
        service.items[RUN_ID] = [
            make_item(f"a{i}", ReviewStatus.APPROVED, None) for i in range(4)
        ] + [make_item(f"p{i}", ReviewStatus.PENDING, None) for i in range(6)]
        return service

    async def test_progress_counts_items(self, unleveled: FakePayrollService):
        """Four approved of ten is 40% even without any per-level step."""
        summary = await PipelineOrchestrator(unleveled).review_summary(RUN_ID, prefer_backend=False)

        assert summary.source == "local"
        assert summary.steps == []
        assert summary.progress.total_items == 10
        assert summary.progress.overall_completion == 40

    async def test_empty_backend_steps_fall_back_to_local(self, unleveled: FakePayrollService):
        summary = await PipelineOrchestrator(unleveled).review_summary(RUN_ID)

        assert summary.source == "local"
        assert summary.progress.overall_completion == 40
