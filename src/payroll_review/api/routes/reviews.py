"""Payroll run review endpoints."""

from decimal import Decimal
from typing import Annotated

from fastapi import APIRouter, Path, Query

from payroll_review.api.dependencies import Orchestrator
from payroll_review.api.schemas import (
    DisbursementResponse,
    ErrorResponse,
    ReviewItemListResponse,
    ReviewItemResponse,
    ReviewSummaryResponse,
    RunProgressResponse,
    StageGateResponse,
    StatusUpdateRequest,
    StepSummaryResponse,
    TransitionResponse,
)

router = APIRouter(prefix="/companies/{company_id}/payroll/runs", tags=["reviews"])

RunId = Annotated[str, Path()]


@router.get(
    "/{run_id}/items",
    response_model=ReviewItemListResponse,
    responses={404: {"model": ErrorResponse}, 422: {"model": ErrorResponse}},
)
async def list_review_items(
    orchestrator: Orchestrator,
    run_id: RunId,
    status_filter: Annotated[str | None, Query(alias="status")] = None,
    q: Annotated[str | None, Query()] = None,
    reviewer_level: Annotated[int | None, Query(ge=1)] = None,
) -> ReviewItemListResponse:
    """List a run's review items, optionally filtered by status and search term."""
    store = await orchestrator.load_items(run_id, reviewer_level)
    items = store.global_search(q or "", status=status_filter)
    return ReviewItemListResponse(
        items=[ReviewItemResponse.from_item(item) for item in items],
        total=len(items),
    )


@router.patch(
    "/{run_id}/items/{review_id}",
    response_model=TransitionResponse,
    responses={
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
        502: {"model": ErrorResponse},
    },
)
async def update_review_status(
    orchestrator: Orchestrator,
    run_id: RunId,
    review_id: Annotated[str, Path()],
    payload: StatusUpdateRequest,
) -> TransitionResponse:
    """Approve, reject or reopen one review item."""
    result = await orchestrator.transition(
        run_id, review_id, payload.status, reviewer_level=payload.reviewer_level
    )
    return TransitionResponse(
        item=ReviewItemResponse.from_item(result.item),
        before=StepSummaryResponse.model_validate(result.before) if result.before else None,
        after=StepSummaryResponse.model_validate(result.after) if result.after else None,
        progress=RunProgressResponse.model_validate(result.progress),
        applied=result.applied,
    )


@router.get(
    "/{run_id}/review-summary",
    response_model=ReviewSummaryResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_review_summary(orchestrator: Orchestrator, run_id: RunId) -> ReviewSummaryResponse:
    """Per-reviewer progress of a run."""
    summary = await orchestrator.review_summary(run_id)
    return ReviewSummaryResponse.model_validate(summary)


@router.get(
    "/{run_id}/stage",
    response_model=StageGateResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_stage_gate(orchestrator: Orchestrator, run_id: RunId) -> StageGateResponse:
    """Whether the run may continue to disbursement."""
    gate = await orchestrator.unlock_next_stage(run_id)
    return StageGateResponse.model_validate(gate)


@router.get(
    "/{run_id}/disbursement",
    response_model=DisbursementResponse,
    responses={404: {"model": ErrorResponse}},
)
async def list_disbursement_items(orchestrator: Orchestrator, run_id: RunId) -> DisbursementResponse:
    """Approved items only, as handed to payment and payslip distribution."""
    items = await orchestrator.disbursement_items(run_id)
    return DisbursementResponse(
        items=[ReviewItemResponse.from_item(item) for item in items],
        total=len(items),
        total_net_pay=sum((item.net_pay for item in items), Decimal("0")),
    )
