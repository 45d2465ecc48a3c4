"""Reviewer roster records."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any

from payroll_review.errors import ValidationError
from payroll_review.models.base import optional_str, parse_datetime, parse_enum


class ReviewerRole(str, Enum):
    """Company roles eligible to review payroll."""

    ADMIN = "ADMIN"
    MANAGER = "MANAGER"


class CompanyRole(str, Enum):
    """All company membership roles."""

    ADMIN = "ADMIN"
    MANAGER = "MANAGER"
    VIEWER = "VIEWER"


class ReviewerStatus(str, Enum):
    """Reviewer account status."""

    ACTIVE = "ACTIVE"
    SUSPENDED = "SUSPENDED"


REVIEWER_ROLES = frozenset(role.value for role in ReviewerRole)


@dataclass(frozen=True)
class Reviewer:
    """A company user empowered to approve payroll, ranked by level."""

    reviewer_id: str
    company_user_id: str
    user_id: str | None
    full_name: str
    email: str
    role: ReviewerRole
    level: int
    status: ReviewerStatus = ReviewerStatus.ACTIVE
    created_at: datetime | None = None
    last_sign_in: datetime | None = None

    @property
    def is_active(self) -> bool:
        return self.status == ReviewerStatus.ACTIVE

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> Reviewer:
        """Build from a ``GET /reviewers`` entry."""
        try:
            level = int(data["reviewer_level"])
        except (KeyError, TypeError, ValueError):
            raise ValidationError(
                f"Reviewer {data.get('id')!r} has no valid reviewer_level"
            ) from None

        return cls(
            reviewer_id=str(data["id"]),
            company_user_id=str(data.get("company_user_id", "")),
            user_id=optional_str(data.get("user_id")),
            full_name=data.get("full_names") or "",
            email=data.get("email") or "",
            role=parse_enum(ReviewerRole, data.get("role"), "reviewer role"),
            level=level,
            status=parse_enum(
                ReviewerStatus, data.get("status", "ACTIVE"), "reviewer status"
            ),
            created_at=parse_datetime(data.get("created_at")),
            last_sign_in=parse_datetime(data.get("last_sign_in")),
        )


@dataclass(frozen=True)
class CompanyUser:
    """A company member that may be assigned as a reviewer."""

    company_user_id: str
    user_id: str | None
    email: str
    full_name: str
    role: CompanyRole
    status: ReviewerStatus = ReviewerStatus.ACTIVE

    @property
    def can_review(self) -> bool:
        """Only admins and managers are eligible reviewers."""
        return self.role.value in REVIEWER_ROLES

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> CompanyUser:
        """Build from a ``GET /reviewers/eligible`` entry."""
        return cls(
            company_user_id=str(data["company_user_id"]),
            user_id=optional_str(data.get("user_id")),
            email=data.get("email") or "",
            full_name=data.get("full_names") or "",
            role=parse_enum(CompanyRole, data.get("role"), "company role"),
            status=parse_enum(
                ReviewerStatus, data.get("status", "ACTIVE"), "user status"
            ),
        )


@dataclass(frozen=True)
class LevelAssignment:
    """Target level for one reviewer in a reorder request."""

    reviewer_id: str
    level: int

    def to_api(self) -> dict[str, Any]:
        return {"id": self.reviewer_id, "reviewer_level": self.level}
