"""Reviewer roster endpoints."""

from typing import Annotated

from fastapi import APIRouter, Path, status

from payroll_review.api.dependencies import ActingUserId, Orchestrator, Service
from payroll_review.api.schemas import (
    EligibleUserResponse,
    ErrorResponse,
    LevelAssignmentResponse,
    MoveResponse,
    ReviewerCreate,
    ReviewerLevelUpdate,
    ReviewerListResponse,
    ReviewerResponse,
    ReviewerSwapRequest,
)
from payroll_review.services import MoveResult, ReviewerRoster

router = APIRouter(prefix="/companies/{company_id}/reviewers", tags=["reviewers"])

ReviewerId = Annotated[str, Path()]


def _roster_response(roster: ReviewerRoster) -> ReviewerListResponse:
    items = [ReviewerResponse.model_validate(r) for r in roster.in_order()]
    return ReviewerListResponse(
        items=items,
        total=len(items),
        has_unique_levels=roster.has_unique_levels(),
    )


def _move_response(result: MoveResult) -> MoveResponse:
    return MoveResponse(
        changed=result.changed,
        assignments=[
            LevelAssignmentResponse.model_validate(a)
            for a in (result.swap.assignments if result.swap else [])
        ],
        reviewers=[ReviewerResponse.model_validate(r) for r in result.roster.in_order()],
    )


# ============================================================================
# Reviewer CRUD
# ============================================================================


@router.get("", response_model=ReviewerListResponse)
async def list_reviewers(orchestrator: Orchestrator) -> ReviewerListResponse:
    """List reviewers ascending by level."""
    return _roster_response(await orchestrator.roster.refresh())


@router.get("/eligible", response_model=list[EligibleUserResponse])
async def list_eligible_users(service: Service) -> list[EligibleUserResponse]:
    """List company users that can be assigned as reviewers."""
    users = await service.list_eligible_users()
    return [EligibleUserResponse.model_validate(u) for u in users if u.can_review]


@router.post(
    "",
    response_model=ReviewerListResponse,
    status_code=status.HTTP_201_CREATED,
    responses={409: {"model": ErrorResponse}, 422: {"model": ErrorResponse}},
)
async def add_reviewer(
    orchestrator: Orchestrator,
    payload: ReviewerCreate,
) -> ReviewerListResponse:
    """Assign a company user as reviewer at the given level."""
    roster = await orchestrator.roster.add_reviewer(payload.company_user_id, payload.level)
    return _roster_response(roster)


@router.patch(
    "/{reviewer_id}",
    response_model=ReviewerListResponse,
    responses={404: {"model": ErrorResponse}, 422: {"model": ErrorResponse}},
)
async def set_reviewer_level(
    orchestrator: Orchestrator,
    reviewer_id: ReviewerId,
    payload: ReviewerLevelUpdate,
) -> ReviewerListResponse:
    """Edit one reviewer's level directly."""
    roster = await orchestrator.roster.set_level(reviewer_id, payload.level)
    return _roster_response(roster)


@router.delete(
    "/{reviewer_id}",
    response_model=ReviewerListResponse,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def remove_reviewer(
    orchestrator: Orchestrator,
    acting_user_id: ActingUserId,
    reviewer_id: ReviewerId,
) -> ReviewerListResponse:
    """Remove a reviewer. The acting user cannot remove themselves."""
    roster = await orchestrator.roster.remove_reviewer(reviewer_id, acting_user_id)
    return _roster_response(roster)


# ============================================================================
# Reordering
# ============================================================================


@router.post(
    "/{reviewer_id}/move-up",
    response_model=MoveResponse,
    responses={404: {"model": ErrorResponse}},
)
async def move_reviewer_up(orchestrator: Orchestrator, reviewer_id: ReviewerId) -> MoveResponse:
    """Swap levels with the previous reviewer. No-op for the first one."""
    return _move_response(await orchestrator.roster.move_up(reviewer_id))


@router.post(
    "/{reviewer_id}/move-down",
    response_model=MoveResponse,
    responses={404: {"model": ErrorResponse}},
)
async def move_reviewer_down(orchestrator: Orchestrator, reviewer_id: ReviewerId) -> MoveResponse:
    """Swap levels with the next reviewer. No-op for the last one."""
    return _move_response(await orchestrator.roster.move_down(reviewer_id))


@router.post(
    "/swap",
    response_model=MoveResponse,
    responses={404: {"model": ErrorResponse}, 422: {"model": ErrorResponse}},
)
async def swap_reviewer_levels(
    orchestrator: Orchestrator,
    payload: ReviewerSwapRequest,
) -> MoveResponse:
    """Exchange two reviewers' levels in one request."""
    result = await orchestrator.roster.swap_levels(
        payload.first_reviewer_id, payload.second_reviewer_id
    )
    return _move_response(result)
