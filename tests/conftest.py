"""Pytest fixtures for review pipeline tests."""

from __future__ import annotations

from dataclasses import replace
from decimal import Decimal

import pytest

from payroll_review.errors import NotFoundError, ReviewPipelineError
from payroll_review.events import EventEmitter
from payroll_review.models import (
    Allowance,
    CompanyRole,
    CompanyUser,
    LevelAssignment,
    PayrollRun,
    Reviewer,
    ReviewerRole,
    ReviewItem,
    ReviewStatus,
    ReviewStepSummary,
    ReviewSummary,
)

COMPANY_ID = "company-1"
RUN_ID = "run-2026-01"


def make_reviewer(
    reviewer_id: str,
    level: int,
    full_name: str,
    user_id: str | None = None,
    role: ReviewerRole = ReviewerRole.ADMIN,
) -> Reviewer:
    return Reviewer(
        reviewer_id=reviewer_id,
        company_user_id=f"cu-{reviewer_id}",
        user_id=user_id or f"user-{reviewer_id}",
        full_name=full_name,
        email=f"{full_name.lower()}@example.com",
        role=role,
        level=level,
    )


def make_user(
    company_user_id: str,
    full_name: str,
    role: CompanyRole = CompanyRole.MANAGER,
) -> CompanyUser:
    return CompanyUser(
        company_user_id=company_user_id,
        user_id=f"user-{company_user_id}",
        email=f"{full_name.lower()}@example.com",
        full_name=full_name,
        role=role,
    )


def make_item(
    review_id: str | None,
    status: ReviewStatus = ReviewStatus.PENDING,
    reviewer_level: int | None = 1,
    full_name: str = "Jane Doe",
    net_pay: str = "1000.00",
    **overrides,
) -> ReviewItem:
    fields = dict(
        item_id=f"item-{review_id}",
        review_id=review_id,
        payroll_run_id=RUN_ID,
        employee_id=f"EMP-{review_id}",
        full_name=full_name,
        status=status,
        job_title="Accountant",
        department="Finance",
        basic_salary=Decimal("1200.00"),
        gross_pay=Decimal("1500.00"),
        total_deductions=Decimal("500.00"),
        net_pay=Decimal(net_pay),
        payment_method="BANK",
        my_status=status,
        reviewer_level=reviewer_level,
    )
    fields.update(overrides)
    return ReviewItem(**fields)


def backend_summary(*steps: tuple[int, int, int, int], status: str = "UNDER_REVIEW") -> ReviewSummary:
    """Review summary as the backend reports it.

    Each step is ``(level, approved, pending, rejected)``.
    """
    run = PayrollRun(RUN_ID, "January", 2026, "PR-0001", status)
    return ReviewSummary(
        payroll_run=run,
        steps=[ReviewStepSummary.from_counts(*step) for step in steps],
    )


class FakePayrollService:
    """In-memory payroll backend recording every call.

    ``fail(method, error)`` makes the next call of ``method`` raise.
    """

    def __init__(self, company_id: str = COMPANY_ID):
        self.company_id = company_id
        self.reviewers: dict[str, Reviewer] = {}
        self.eligible: list[CompanyUser] = []
        self.items: dict[str, list[ReviewItem]] = {}
        self.summaries: dict[str, ReviewSummary] = {}
        self.runs: dict[str, PayrollRun] = {}
        self.allowances: list[Allowance] = []
        self.calls: list[tuple[str, tuple]] = []
        self.failures: dict[str, ReviewPipelineError] = {}
        self._next_id = 100

    def fail(self, method: str, error: ReviewPipelineError) -> None:
        self.failures[method] = error

    def calls_to(self, method: str) -> list[tuple]:
        return [args for name, args in self.calls if name == method]

    @property
    def mutation_calls(self) -> list[str]:
        reads = {
            "list_reviewers",
            "list_eligible_users",
            "list_review_items",
            "get_review_summary",
            "list_allowances",
        }
        return [name for name, _ in self.calls if name not in reads]

    def _record(self, method: str, *args) -> None:
        self.calls.append((method, args))
        error = self.failures.pop(method, None)
        if error is not None:
            raise error

    def add_reviewers(self, *reviewers: Reviewer) -> None:
        for reviewer in reviewers:
            self.reviewers[reviewer.reviewer_id] = reviewer

    # Reviewers

    async def list_reviewers(self) -> list[Reviewer]:
        self._record("list_reviewers")
        return sorted(self.reviewers.values(), key=lambda r: r.level)

    async def list_eligible_users(self) -> list[CompanyUser]:
        self._record("list_eligible_users")
        return list(self.eligible)

    async def create_reviewer(self, company_user_id: str, level: int) -> None:
        self._record("create_reviewer", company_user_id, level)
        user = next(u for u in self.eligible if u.company_user_id == company_user_id)
        self._next_id += 1
        reviewer_id = f"rev-{self._next_id}"
        self.reviewers[reviewer_id] = Reviewer(
            reviewer_id=reviewer_id,
            company_user_id=company_user_id,
            user_id=user.user_id,
            full_name=user.full_name,
            email=user.email,
            role=ReviewerRole(user.role.value),
            level=level,
        )

    async def update_reviewer_level(self, reviewer_id: str, level: int) -> None:
        self._record("update_reviewer_level", reviewer_id, level)
        if reviewer_id not in self.reviewers:
            raise NotFoundError()
        self.reviewers[reviewer_id] = replace(self.reviewers[reviewer_id], level=level)

    async def reorder_reviewers(self, assignments: list[LevelAssignment]) -> None:
        self._record("reorder_reviewers", list(assignments))
        if any(a.reviewer_id not in self.reviewers for a in assignments):
            raise NotFoundError()
        for a in assignments:
            self.reviewers[a.reviewer_id] = replace(self.reviewers[a.reviewer_id], level=a.level)

    async def delete_reviewer(self, reviewer_id: str) -> None:
        self._record("delete_reviewer", reviewer_id)
        if self.reviewers.pop(reviewer_id, None) is None:
            raise NotFoundError()

    # Reviews

    async def list_review_items(self, payroll_run_id: str) -> list[ReviewItem]:
        self._record("list_review_items", payroll_run_id)
        if payroll_run_id not in self.items:
            raise NotFoundError(f"Payroll run {payroll_run_id} not found")
        return list(self.items[payroll_run_id])

    async def update_review_status(self, review_id: str, status: ReviewStatus) -> None:
        self._record("update_review_status", review_id, status)
        for run_id, items in self.items.items():
            for index, item in enumerate(items):
                if item.review_id == review_id:
                    items[index] = replace(item, status=status, my_status=status)
                    return
        raise NotFoundError()

    async def get_review_summary(self, payroll_run_id: str) -> ReviewSummary:
        self._record("get_review_summary", payroll_run_id)
        if payroll_run_id in self.summaries:
            return self.summaries[payroll_run_id]
        run = self.runs.get(payroll_run_id) or PayrollRun(
            payroll_run_id=payroll_run_id,
            payroll_month="January",
            payroll_year=2026,
            payroll_number="PR-0001",
            status="UNDER_REVIEW",
        )
        return ReviewSummary(payroll_run=run, steps=[])

    # Allowances

    async def list_allowances(self) -> list[Allowance]:
        self._record("list_allowances")
        return list(self.allowances)


@pytest.fixture
def service() -> FakePayrollService:
    """Backend with Alice (1), Bob (2) and Carol (3) as reviewers."""
    svc = FakePayrollService()
    svc.add_reviewers(
        make_reviewer("r1", 1, "Alice"),
        make_reviewer("r2", 2, "Bob"),
        make_reviewer("r3", 3, "Carol"),
    )
    svc.eligible = [
        make_user("cu-dave", "Dave"),
        make_user("cu-erin", "Erin", role=CompanyRole.VIEWER),
    ]
    return svc


@pytest.fixture
def seeded_run(service: FakePayrollService) -> FakePayrollService:
    """Run with four items across two levels and one non-reviewable row."""
    service.items[RUN_ID] = [
        make_item("rv-1", ReviewStatus.APPROVED, 1, full_name="Jane Doe"),
        make_item("rv-2", ReviewStatus.PENDING, 1, full_name="John Smith", department="Sales"),
        make_item("rv-3", ReviewStatus.REJECTED, 2, full_name="Mary Major"),
        make_item("rv-4", ReviewStatus.PENDING, 2, full_name="Peter Pan", job_title="Driver"),
        make_item(None, ReviewStatus.PENDING, None, full_name="No Review"),
    ]
    return service


@pytest.fixture
def events() -> tuple[EventEmitter, list]:
    emitter = EventEmitter()
    received: list = []
    emitter.on_all(received.append)
    return emitter, received


@pytest.fixture
def prepare_run(service: FakePayrollService) -> FakePayrollService:
    """Run shaped like the backend's prepare rows.

    Rows carry no reviewer level, and the acting reviewer's own decision
    differs from the aggregate status on some of them.
    """
    service.items[RUN_ID] = [
        make_item("rv-1", ReviewStatus.PENDING, None, my_status=ReviewStatus.APPROVED),
        make_item("rv-2", ReviewStatus.PENDING, None, full_name="John Smith", my_status=None),
        make_item("rv-3", ReviewStatus.APPROVED, None, full_name="Mary Major"),
        make_item(
            "rv-4",
            ReviewStatus.REJECTED,
            None,
            full_name="Peter Pan",
            my_status=ReviewStatus.PENDING,
        ),
    ]
    service.summaries[RUN_ID] = backend_summary((1, 1, 3, 0), (2, 1, 2, 1))
    return service
