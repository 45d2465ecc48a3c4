"""Allowance records with typed, per-type-code metadata.

Allowance metadata is shaped differently per allowance type. Each shape is
its own frozen dataclass and ``parse_metadata`` picks the shape from the
allowance's type code through ``METADATA_TYPES``; unknown codes fall back to
``GenericMetadata``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any, ClassVar, Union

from payroll_review.errors import ValidationError
from payroll_review.models.base import optional_str, parse_decimal, parse_enum


class AllowanceTypeCode(str, Enum):
    """Allowance type codes with a dedicated metadata shape."""

    HOUSING = "HOUSING"
    CAR = "CAR"
    MEAL = "MEAL"


class AppliesTo(str, Enum):
    """Who an allowance is assigned to."""

    INDIVIDUAL = "INDIVIDUAL"
    COMPANY = "COMPANY"
    DEPARTMENT = "DEPARTMENT"
    SUB_DEPARTMENT = "SUB_DEPARTMENT"
    JOB_TITLE = "JOB_TITLE"


class CalculationType(str, Enum):
    FIXED = "FIXED"
    PERCENTAGE = "PERCENTAGE"


HOUSING_TYPES = frozenset({"ordinary", "farm", "service_director"})


@dataclass(frozen=True)
class HousingMetadata:
    """Housing benefit details."""

    type_code: ClassVar[str] = AllowanceTypeCode.HOUSING.value

    housing_type: str
    is_employer_owned: bool | None = None
    rent_paid_to_employer: Decimal | None = None

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> HousingMetadata:
        rent = data.get("rent_paid_to_employer")
        owned = data.get("is_employer_owned")
        return cls(
            housing_type=str(data.get("type") or ""),
            is_employer_owned=bool(owned) if owned is not None else None,
            rent_paid_to_employer=parse_decimal(rent) if rent is not None else None,
        )

    def validate(self) -> None:
        if self.housing_type not in HOUSING_TYPES:
            raise ValidationError(f"Unknown housing type: {self.housing_type!r}")
        if (
            self.housing_type == "ordinary"
            and self.is_employer_owned is False
            and (self.rent_paid_to_employer is None or self.rent_paid_to_employer <= 0)
        ):
            raise ValidationError(
                "Please enter the rent paid to employer for rented housing"
            )

    def search_fields(self) -> list[str]:
        return [self.housing_type]


@dataclass(frozen=True)
class CarMetadata:
    """Company car benefit details."""

    type_code: ClassVar[str] = AllowanceTypeCode.CAR.value

    engine_cc: int

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> CarMetadata:
        try:
            return cls(engine_cc=int(data.get("engine_cc") or 0))
        except (TypeError, ValueError):
            raise ValidationError(f"Invalid engine_cc: {data.get('engine_cc')!r}") from None

    def validate(self) -> None:
        if self.engine_cc <= 0:
            raise ValidationError("Please enter the car's engine capacity (CC)")

    def search_fields(self) -> list[str]:
        return []


@dataclass(frozen=True)
class MealMetadata:
    """Meal allowance; carries no extra details."""

    type_code: ClassVar[str] = AllowanceTypeCode.MEAL.value

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> MealMetadata:
        return cls()

    def validate(self) -> None:
        return None

    def search_fields(self) -> list[str]:
        return []


@dataclass(frozen=True)
class GenericMetadata:
    """Metadata of an allowance type without a dedicated shape."""

    type_code: ClassVar[str] = ""

    raw: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> GenericMetadata:
        return cls(raw=dict(data))

    def validate(self) -> None:
        return None

    def search_fields(self) -> list[str]:
        return []


AllowanceMetadata = Union[HousingMetadata, CarMetadata, MealMetadata, GenericMetadata]

METADATA_TYPES: dict[str, type[HousingMetadata | CarMetadata | MealMetadata]] = {
    AllowanceTypeCode.HOUSING.value: HousingMetadata,
    AllowanceTypeCode.CAR.value: CarMetadata,
    AllowanceTypeCode.MEAL.value: MealMetadata,
}


def parse_metadata(type_code: str, payload: dict[str, Any] | None) -> AllowanceMetadata:
    """Resolve the metadata shape from the allowance type code."""
    metadata_cls = METADATA_TYPES.get(type_code.upper(), GenericMetadata)
    return metadata_cls.from_api(payload or {})


@dataclass(frozen=True)
class Allowance:
    """A benefit/allowance assignment."""

    allowance_id: str
    type_code: str
    type_name: str
    applies_to: AppliesTo
    value: Decimal
    calculation_type: CalculationType
    metadata: AllowanceMetadata
    is_recurring: bool = False
    employee_name: str | None = None
    department_name: str | None = None
    sub_department_name: str | None = None
    job_title: str | None = None

    @property
    def recipient_display(self) -> str:
        if self.applies_to == AppliesTo.INDIVIDUAL:
            return self.employee_name or "Unknown Employee"
        if self.applies_to == AppliesTo.COMPANY:
            return "All Employees"
        if self.applies_to == AppliesTo.DEPARTMENT:
            return self.department_name or "Unknown Department"
        if self.applies_to == AppliesTo.SUB_DEPARTMENT:
            return self.sub_department_name or "Unknown Sub-department"
        if self.applies_to == AppliesTo.JOB_TITLE:
            return self.job_title or "Unknown Job Title"
        return "N/A"

    @property
    def metadata_issue(self) -> str | None:
        """Why the type-specific details are incomplete, or None when valid."""
        try:
            self.metadata.validate()
        except ValidationError as exc:
            return exc.user_message
        return None

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> Allowance:
        """Build from a ``GET /allowances`` entry."""
        allowance_type = data.get("allowance_types") or {}
        type_code = str(allowance_type.get("code") or "").upper()

        employee = data.get("employees")
        employee_name = None
        if employee:
            employee_name = f"{employee.get('first_name', '')} {employee.get('last_name', '')}".strip()

        return cls(
            allowance_id=str(data["id"]),
            type_code=type_code,
            type_name=allowance_type.get("name") or "",
            applies_to=parse_enum(AppliesTo, data.get("applies_to"), "applies_to"),
            value=parse_decimal(data.get("value")),
            calculation_type=parse_enum(
                CalculationType, data.get("calculation_type") or "FIXED", "calculation type"
            ),
            metadata=parse_metadata(type_code, data.get("metadata")),
            is_recurring=bool(data.get("is_recurring")),
            employee_name=employee_name or None,
            department_name=optional_str((data.get("departments") or {}).get("name")),
            sub_department_name=optional_str((data.get("sub_departments") or {}).get("name")),
            job_title=optional_str((data.get("job_titles") or {}).get("title")),
        )
