"""Protocol and credential types for the remote payroll service.

The payroll service is the system of record for reviewers and review items.
The pipeline talks to it only through the ``PayrollService`` protocol, so
tests and alternative transports can stand in for the HTTP client.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from payroll_review.errors import AuthError
from payroll_review.models import (
    Allowance,
    CompanyUser,
    LevelAssignment,
    Reviewer,
    ReviewItem,
    ReviewStatus,
    ReviewSummary,
)


@dataclass(frozen=True)
class Credential:
    """Bearer credential passed explicitly into every client."""

    access_token: str
    user_id: str | None = None

    def __post_init__(self) -> None:
        if not self.access_token:
            raise AuthError()

    @property
    def authorization_header(self) -> str:
        return f"Bearer {self.access_token}"


class PayrollService(Protocol):
    """Contract the review pipeline needs from the payroll backend.

    Every method raises ``AuthError``, ``NotFoundError`` or ``NetworkError``
    on the matching failures. Mutations raise ``UpdateFailedError`` when the
    backend rejects them; reads raise ``FetchFailedError``.
    """

    company_id: str

    async def list_reviewers(self) -> list[Reviewer]:
        """Return the company's reviewers."""
        ...

    async def list_eligible_users(self) -> list[CompanyUser]:
        """Return company users that may be assigned as reviewers."""
        ...

    async def create_reviewer(self, company_user_id: str, level: int) -> None:
        """Assign a company user as reviewer at ``level``.

        The backend may shift other levels to make room.
        """
        ...

    async def update_reviewer_level(self, reviewer_id: str, level: int) -> None:
        """Set one reviewer's level."""
        ...

    async def reorder_reviewers(self, assignments: list[LevelAssignment]) -> None:
        """Apply several level assignments in one atomic request."""
        ...

    async def delete_reviewer(self, reviewer_id: str) -> None:
        """Remove a reviewer."""
        ...

    async def list_review_items(self, payroll_run_id: str) -> list[ReviewItem]:
        """Return every payroll line of a run with its review status."""
        ...

    async def update_review_status(self, review_id: str, status: ReviewStatus) -> None:
        """Persist a single review item's status."""
        ...

    async def get_review_summary(self, payroll_run_id: str) -> ReviewSummary:
        """Return backend-aggregated per-reviewer progress and run metadata."""
        ...

    async def list_allowances(self) -> list[Allowance]:
        """Return the company's allowance assignments."""
        ...
