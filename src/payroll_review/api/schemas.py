"""Pydantic schemas for API request/response models."""

from dataclasses import asdict
from datetime import datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from payroll_review.models import (
    Allowance,
    CompanyRole,
    ReviewerRole,
    ReviewerStatus,
    ReviewItem,
    ReviewStatus,
)
from payroll_review.services import ApprovalStateMachine, PipelineState


# ============================================================================
# Reviewer schemas
# ============================================================================


class ReviewerResponse(BaseModel):
    """Schema for reviewer response."""

    model_config = ConfigDict(from_attributes=True)

    reviewer_id: str
    company_user_id: str
    user_id: str | None = None
    full_name: str
    email: str
    role: ReviewerRole
    level: int
    status: ReviewerStatus
    is_active: bool
    created_at: datetime | None = None
    last_sign_in: datetime | None = None


class ReviewerListResponse(BaseModel):
    """Schema for the ordered reviewer list."""

    items: list[ReviewerResponse]
    total: int
    has_unique_levels: bool


class EligibleUserResponse(BaseModel):
    """Schema for a company user that may become a reviewer."""

    model_config = ConfigDict(from_attributes=True)

    company_user_id: str
    user_id: str | None = None
    email: str
    full_name: str
    role: CompanyRole
    can_review: bool


class ReviewerCreate(BaseModel):
    """Schema for assigning a company user as reviewer."""

    company_user_id: str
    level: int


class ReviewerLevelUpdate(BaseModel):
    """Schema for a direct level edit."""

    level: int


class ReviewerSwapRequest(BaseModel):
    """Schema for exchanging two reviewers' levels."""

    first_reviewer_id: str
    second_reviewer_id: str


class LevelAssignmentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    reviewer_id: str
    level: int


class MoveResponse(BaseModel):
    """Schema for a reorder result."""

    changed: bool
    assignments: list[LevelAssignmentResponse] = []
    reviewers: list[ReviewerResponse]


# ============================================================================
# Review item schemas
# ============================================================================


class ReviewItemResponse(BaseModel):
    """Schema for one payroll line under review."""

    model_config = ConfigDict(from_attributes=True)

    item_id: str
    review_id: str | None = None
    payroll_run_id: str
    employee_id: str
    full_name: str
    job_title: str
    department: str
    basic_salary: Decimal
    gross_pay: Decimal
    total_deductions: Decimal
    net_pay: Decimal
    payment_method: str
    status: ReviewStatus
    my_status: ReviewStatus | None = None
    reviewer_level: int | None = None
    is_reviewable: bool
    available_actions: list[str] = []

    @classmethod
    def from_item(cls, item: ReviewItem) -> "ReviewItemResponse":
        response = cls.model_validate(item)
        if item.is_reviewable:
            response.available_actions = [
                s.value for s in ApprovalStateMachine.get_next_statuses(item.acting_status)
            ]
        return response


class ReviewItemListResponse(BaseModel):
    """Schema for review item list response."""

    items: list[ReviewItemResponse]
    total: int


class StatusUpdateRequest(BaseModel):
    """Schema for a review status transition."""

    status: str
    reviewer_level: int | None = Field(default=None, ge=1)


# ============================================================================
# Progress schemas
# ============================================================================


class StepSummaryResponse(BaseModel):
    """Schema for one reviewer level's progress."""

    model_config = ConfigDict(from_attributes=True)

    reviewer_level: int
    reviewer_id: str | None = None
    reviewer_name: str
    total_items: int
    approved_items: int
    pending_items: int
    rejected_items: int
    completion_percentage: int


class RunProgressResponse(BaseModel):
    """Schema for whole-run progress."""

    model_config = ConfigDict(from_attributes=True)

    total_items: int
    approved_items: int
    pending_items: int
    rejected_items: int
    overall_completion: int


class PayrollRunResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    payroll_run_id: str
    payroll_month: str
    payroll_year: int
    payroll_number: str
    status: str
    period_label: str
    accepts_reviews: bool


class ReviewSummaryResponse(BaseModel):
    """Schema for the review summary of a run."""

    model_config = ConfigDict(from_attributes=True)

    payroll_run: PayrollRunResponse
    steps: list[StepSummaryResponse]
    progress: RunProgressResponse
    source: str


class TransitionResponse(BaseModel):
    """Schema for a status transition result."""

    item: ReviewItemResponse
    before: StepSummaryResponse | None = None
    after: StepSummaryResponse | None = None
    progress: RunProgressResponse
    applied: bool


class StageGateResponse(BaseModel):
    """Schema for the continue-to-disbursement gate."""

    model_config = ConfigDict(from_attributes=True)

    enabled: bool
    state: PipelineState
    reason: str
    overall_completion: int
    configure_reviewers: bool


class DisbursementResponse(BaseModel):
    """Approved items handed to disbursement and payslips."""

    items: list[ReviewItemResponse]
    total: int
    total_net_pay: Decimal


# ============================================================================
# Allowance schemas
# ============================================================================


class AllowanceResponse(BaseModel):
    """Schema for allowance response."""

    allowance_id: str
    type_code: str
    type_name: str
    applies_to: str
    recipient_display: str
    value: Decimal
    calculation_type: str
    is_recurring: bool
    metadata: dict[str, Any]
    metadata_issue: str | None = None

    @classmethod
    def from_allowance(cls, allowance: Allowance) -> "AllowanceResponse":
        return cls(
            allowance_id=allowance.allowance_id,
            type_code=allowance.type_code,
            type_name=allowance.type_name,
            applies_to=allowance.applies_to.value,
            recipient_display=allowance.recipient_display,
            value=allowance.value,
            calculation_type=allowance.calculation_type.value,
            is_recurring=allowance.is_recurring,
            metadata=asdict(allowance.metadata),
            metadata_issue=allowance.metadata_issue,
        )


class AllowanceListResponse(BaseModel):
    items: list[AllowanceResponse]
    total: int


# ============================================================================
# Error schemas
# ============================================================================


class ErrorResponse(BaseModel):
    """Schema for error response."""

    detail: str
    code: str | None = None
