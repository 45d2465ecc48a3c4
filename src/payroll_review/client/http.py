"""HTTP adapter for the remote payroll service."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from payroll_review.client.base import Credential
from payroll_review.config import Settings
from payroll_review.errors import (
    AuthError,
    FetchFailedError,
    NetworkError,
    NotFoundError,
    UpdateFailedError,
)
from payroll_review.models import (
    Allowance,
    CompanyUser,
    LevelAssignment,
    Reviewer,
    ReviewItem,
    ReviewStatus,
    ReviewSummary,
)

logger = logging.getLogger(__name__)


def _error_message(response: httpx.Response) -> str | None:
    """Extract the backend's ``{"error": ...}`` message, if any."""
    try:
        body = response.json()
    except ValueError:
        return None
    if isinstance(body, dict):
        message = body.get("error") or body.get("message") or body.get("detail")
        if isinstance(message, str) and message:
            return message
    return None


class HttpPayrollService:
    """``PayrollService`` over httpx.

    All paths are scoped to one company. The credential is injected at
    construction; there is no ambient session.

    Usage:
        async with HttpPayrollService(base_url, company_id, credential) as svc:
            reviewers = await svc.list_reviewers()
    """

    def __init__(
        self,
        base_url: str,
        company_id: str,
        credential: Credential | None,
        timeout_seconds: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        if not company_id:
            raise ValueError("company_id is required")
        self.company_id = company_id
        self.credential = credential
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            timeout=timeout_seconds,
            transport=transport,
        )

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        credential: Credential | None,
        company_id: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> HttpPayrollService:
        return cls(
            base_url=settings.api_base_url,
            company_id=company_id or settings.company_id or "",
            credential=credential,
            timeout_seconds=settings.http_timeout_seconds,
            transport=transport,
        )

    async def __aenter__(self) -> HttpPayrollService:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    # =========================================================================
    # Transport
    # =========================================================================

    def _path(self, suffix: str) -> str:
        return f"/company/{self.company_id}{suffix}"

    async def _request(
        self,
        method: str,
        suffix: str,
        *,
        json: dict[str, Any] | None = None,
        mutation: bool = False,
    ) -> Any:
        """Send one request and map failures onto the error taxonomy."""
        if self.credential is None:
            raise AuthError()

        path = self._path(suffix)
        try:
            response = await self._client.request(
                method,
                path,
                json=json,
                headers={"Authorization": self.credential.authorization_header},
            )
        except httpx.TimeoutException as e:
            logger.warning("Timeout calling %s %s", method, path)
            raise NetworkError() from e
        except httpx.TransportError as e:
            logger.warning("Transport error calling %s %s: %s", method, path, e)
            raise NetworkError() from e

        if response.status_code == httpx.codes.UNAUTHORIZED:
            raise AuthError(status_code=response.status_code)
        if response.status_code == httpx.codes.NOT_FOUND:
            raise NotFoundError(_error_message(response), status_code=response.status_code)
        if response.is_error:
            message = _error_message(response)
            logger.warning(
                "Payroll service rejected %s %s: %s %s",
                method,
                path,
                response.status_code,
                message or "",
            )
            error_cls = UpdateFailedError if mutation else FetchFailedError
            raise error_cls(message, status_code=response.status_code)

        logger.debug("%s %s -> %s", method, path, response.status_code)
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            return None

    # =========================================================================
    # Reviewers
    # =========================================================================

    async def list_reviewers(self) -> list[Reviewer]:
        data = await self._request("GET", "/reviewers")
        return [Reviewer.from_api(row) for row in data or []]

    async def list_eligible_users(self) -> list[CompanyUser]:
        data = await self._request("GET", "/reviewers/eligible")
        return [CompanyUser.from_api(row) for row in data or []]

    async def create_reviewer(self, company_user_id: str, level: int) -> None:
        await self._request(
            "POST",
            "/reviewers",
            json={"company_user_id": company_user_id, "reviewer_level": level},
            mutation=True,
        )

    async def update_reviewer_level(self, reviewer_id: str, level: int) -> None:
        await self._request(
            "PATCH",
            f"/reviewers/{reviewer_id}",
            json={"reviewer_level": level},
            mutation=True,
        )

    async def reorder_reviewers(self, assignments: list[LevelAssignment]) -> None:
        await self._request(
            "POST",
            "/reviewers/reorder",
            json={"reviewers": [a.to_api() for a in assignments]},
            mutation=True,
        )

    async def delete_reviewer(self, reviewer_id: str) -> None:
        await self._request("DELETE", f"/reviewers/{reviewer_id}", mutation=True)

    # =========================================================================
    # Payroll reviews
    # =========================================================================

    async def list_review_items(self, payroll_run_id: str) -> list[ReviewItem]:
        data = await self._request("GET", f"/payroll/runs/{payroll_run_id}/prepare")
        return [ReviewItem.from_api(row, payroll_run_id) for row in data or []]

    async def update_review_status(self, review_id: str, status: ReviewStatus) -> None:
        await self._request(
            "PATCH",
            f"/payroll/reviews/{review_id}",
            json={"status": ReviewStatus(status).value},
            mutation=True,
        )

    async def get_review_summary(self, payroll_run_id: str) -> ReviewSummary:
        data = await self._request("GET", f"/payroll/runs/{payroll_run_id}/review-summary")
        return ReviewSummary.from_api(data or {}, payroll_run_id)

    # =========================================================================
    # Allowances
    # =========================================================================

    async def list_allowances(self) -> list[Allowance]:
        data = await self._request("GET", "/allowances")
        return [Allowance.from_api(row) for row in data or []]
