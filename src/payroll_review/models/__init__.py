"""Review pipeline records parsed from payroll service payloads."""

from payroll_review.models.allowance import (
    Allowance,
    AllowanceMetadata,
    AllowanceTypeCode,
    AppliesTo,
    CalculationType,
    CarMetadata,
    GenericMetadata,
    HousingMetadata,
    MealMetadata,
    parse_metadata,
)
from payroll_review.models.review import (
    PayrollRun,
    PayrollRunStatus,
    ReviewItem,
    ReviewStatus,
    ReviewStepSummary,
    ReviewSummary,
    RunProgress,
    completion_percentage,
)
from payroll_review.models.reviewer import (
    CompanyRole,
    CompanyUser,
    LevelAssignment,
    Reviewer,
    ReviewerRole,
    ReviewerStatus,
)

__all__ = [
    "Allowance",
    "AllowanceMetadata",
    "AllowanceTypeCode",
    "AppliesTo",
    "CalculationType",
    "CarMetadata",
    "GenericMetadata",
    "HousingMetadata",
    "MealMetadata",
    "parse_metadata",
    "PayrollRun",
    "PayrollRunStatus",
    "ReviewItem",
    "ReviewStatus",
    "ReviewStepSummary",
    "ReviewSummary",
    "RunProgress",
    "completion_percentage",
    "CompanyRole",
    "CompanyUser",
    "LevelAssignment",
    "Reviewer",
    "ReviewerRole",
    "ReviewerStatus",
]
