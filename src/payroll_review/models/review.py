"""Payroll run review items and derived progress records."""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Any, Iterable

from payroll_review.models.base import optional_str, parse_decimal, parse_enum


class ReviewStatus(str, Enum):
    """Review status of a single payroll line item."""

    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class PayrollRunStatus(str, Enum):
    """Coarse payroll run lifecycle, owned by the backend."""

    DRAFT = "DRAFT"
    UNDER_REVIEW = "UNDER_REVIEW"
    APPROVED = "APPROVED"
    PAID = "PAID"
    COMPLETED = "COMPLETED"


# Runs in these statuses no longer accept review decisions
CLOSED_RUN_STATUSES = frozenset({PayrollRunStatus.PAID.value, PayrollRunStatus.COMPLETED.value})

PERCENT_PRECISION = Decimal("1")


def completion_percentage(approved: int, total: int) -> int:
    """Share of approved items as a whole percentage, rounded half-up.

    Returns 0 for an empty set rather than dividing by zero.
    """
    if total <= 0:
        return 0
    ratio = Decimal(approved * 100) / Decimal(total)
    return int(ratio.quantize(PERCENT_PRECISION, rounding=ROUND_HALF_UP))


@dataclass(frozen=True)
class ReviewItem:
    """One employee's payroll line for one run, carrying an approval status.

    Pay figures are computed by the backend and treated as immutable facts.
    """

    item_id: str
    review_id: str | None
    payroll_run_id: str
    employee_id: str
    full_name: str
    status: ReviewStatus
    job_title: str = ""
    department: str = ""
    basic_salary: Decimal = Decimal("0")
    gross_pay: Decimal = Decimal("0")
    total_deductions: Decimal = Decimal("0")
    net_pay: Decimal = Decimal("0")
    payment_method: str = ""
    my_status: ReviewStatus | None = None
    reviewer_level: int | None = None

    @property
    def is_reviewable(self) -> bool:
        """Items without a review record never expose an approval action."""
        return bool(self.review_id)

    @property
    def acting_status(self) -> ReviewStatus:
        """The acting reviewer's own decision, falling back to the aggregate."""
        return self.my_status or self.status

    @classmethod
    def from_api(cls, data: dict[str, Any], payroll_run_id: str) -> ReviewItem:
        """Build from a ``GET /payroll/runs/{id}/prepare`` row."""
        my_status = data.get("myStatus")
        level = data.get("reviewerLevel")
        return cls(
            item_id=str(data.get("id") or data.get("employeeId")),
            review_id=optional_str(data.get("reviewId")) or None,
            payroll_run_id=str(data.get("payrollRunId") or payroll_run_id),
            employee_id=str(data.get("employeeId", "")),
            full_name=data.get("fullName") or "",
            status=parse_enum(
                ReviewStatus, data.get("reviewStatus") or "PENDING", "review status"
            ),
            job_title=data.get("jobTitle") or "",
            department=data.get("department") or "",
            basic_salary=parse_decimal(data.get("basicSalary")),
            gross_pay=parse_decimal(data.get("grossPay")),
            total_deductions=parse_decimal(data.get("totalDeductions")),
            net_pay=parse_decimal(data.get("netPay")),
            payment_method=data.get("paymentMethod") or "",
            my_status=(
                parse_enum(ReviewStatus, my_status, "review status") if my_status else None
            ),
            reviewer_level=int(level) if level is not None else None,
        )


@dataclass(frozen=True)
class PayrollRun:
    """One month/year payroll cycle."""

    payroll_run_id: str
    payroll_month: str
    payroll_year: int
    payroll_number: str
    status: str

    @property
    def accepts_reviews(self) -> bool:
        return self.status.upper() not in CLOSED_RUN_STATUSES

    @property
    def period_label(self) -> str:
        return f"{self.payroll_month} {self.payroll_year}"

    @classmethod
    def from_api(cls, data: dict[str, Any], payroll_run_id: str) -> PayrollRun:
        return cls(
            payroll_run_id=str(data.get("id") or payroll_run_id),
            payroll_month=data.get("payroll_month") or "",
            payroll_year=int(data.get("payroll_year") or 0),
            payroll_number=str(data.get("payroll_number") or ""),
            status=str(data.get("status") or PayrollRunStatus.DRAFT.value),
        )


@dataclass(frozen=True)
class ReviewStepSummary:
    """Approval progress of one reviewer level."""

    reviewer_level: int
    total_items: int
    approved_items: int
    pending_items: int
    rejected_items: int
    completion_percentage: int
    reviewer_id: str | None = None
    reviewer_name: str = ""

    @classmethod
    def from_counts(
        cls,
        reviewer_level: int,
        approved: int,
        pending: int,
        rejected: int,
        reviewer_id: str | None = None,
        reviewer_name: str = "",
    ) -> ReviewStepSummary:
        total = approved + pending + rejected
        return cls(
            reviewer_level=reviewer_level,
            total_items=total,
            approved_items=approved,
            pending_items=pending,
            rejected_items=rejected,
            completion_percentage=completion_percentage(approved, total),
            reviewer_id=reviewer_id,
            reviewer_name=reviewer_name,
        )

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> ReviewStepSummary:
        """Build from a backend ``steps`` entry, keeping its aggregate."""
        total = int(data.get("total_items") or 0)
        approved = int(data.get("approved_items") or 0)
        completion = data.get("completion_percentage")
        return cls(
            reviewer_level=int(data.get("reviewer_level") or 0),
            total_items=total,
            approved_items=approved,
            pending_items=int(data.get("pending_items") or 0),
            rejected_items=int(data.get("rejected_items") or 0),
            completion_percentage=(
                int(completion) if completion is not None
                else completion_percentage(approved, total)
            ),
            reviewer_id=optional_str(data.get("reviewer_id")),
            reviewer_name=data.get("reviewer_name") or "",
        )


@dataclass(frozen=True)
class RunProgress:
    """Whole-run aggregate of review progress."""

    total_items: int = 0
    approved_items: int = 0
    pending_items: int = 0
    rejected_items: int = 0

    @property
    def overall_completion(self) -> int:
        return completion_percentage(self.approved_items, self.total_items)

    @classmethod
    def from_steps(cls, steps: Iterable[ReviewStepSummary]) -> RunProgress:
        """Sum per-reviewer aggregates."""
        total = approved = pending = rejected = 0
        for step in steps:
            total += step.total_items
            approved += step.approved_items
            pending += step.pending_items
            rejected += step.rejected_items
        return cls(total, approved, pending, rejected)

    @classmethod
    def from_items(cls, items: Iterable[ReviewItem]) -> RunProgress:
        """Count reviewable items by status."""
        counts = {status: 0 for status in ReviewStatus}
        for item in items:
            if item.is_reviewable:
                counts[item.status] += 1
        return cls(
            total_items=sum(counts.values()),
            approved_items=counts[ReviewStatus.APPROVED],
            pending_items=counts[ReviewStatus.PENDING],
            rejected_items=counts[ReviewStatus.REJECTED],
        )


@dataclass(frozen=True)
class ReviewSummary:
    """Review pipeline view of a payroll run."""

    payroll_run: PayrollRun
    steps: list[ReviewStepSummary] = field(default_factory=list)
    source: str = "backend"
    item_progress: RunProgress | None = None

    @property
    def progress(self) -> RunProgress:
        """Counted from items when built locally, else summed over steps."""
        if self.item_progress is not None:
            return self.item_progress
        return RunProgress.from_steps(self.steps)

    @classmethod
    def from_api(cls, data: dict[str, Any], payroll_run_id: str) -> ReviewSummary:
        """Build from ``GET /payroll/runs/{id}/review-summary``."""
        steps = [ReviewStepSummary.from_api(step) for step in data.get("steps") or []]
        steps.sort(key=lambda s: s.reviewer_level)
        return cls(
            payroll_run=PayrollRun.from_api(data.get("payroll") or {}, payroll_run_id),
            steps=steps,
            source="backend",
        )
