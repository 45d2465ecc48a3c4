"""Allowance listing endpoints."""

from typing import Annotated

from fastapi import APIRouter, Query

from payroll_review.api.dependencies import Service
from payroll_review.api.schemas import AllowanceListResponse, AllowanceResponse
from payroll_review.services import search_allowances

router = APIRouter(prefix="/companies/{company_id}/allowances", tags=["allowances"])


@router.get("", response_model=AllowanceListResponse)
async def list_allowances(
    service: Service,
    q: Annotated[str, Query()] = "",
) -> AllowanceListResponse:
    """List allowances, searching recipient, type and type-specific details."""
    allowances = search_allowances(await service.list_allowances(), q)
    return AllowanceListResponse(
        items=[AllowanceResponse.from_allowance(a) for a in allowances],
        total=len(allowances),
    )
