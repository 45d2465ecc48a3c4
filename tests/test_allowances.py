"""Tests for allowance metadata variants and allowance search."""

from decimal import Decimal

import pytest

from payroll_review.errors import ValidationError
from payroll_review.models import (
    Allowance,
    AppliesTo,
    CarMetadata,
    GenericMetadata,
    HousingMetadata,
    MealMetadata,
    parse_metadata,
)
from payroll_review.services import matches_term, search_allowances


def allowance_payload(**overrides) -> dict:
    data = {
        "id": "al-1",
        "applies_to": "INDIVIDUAL",
        "value": "250.00",
        "calculation_type": "FIXED",
        "is_recurring": True,
        "allowance_types": {"code": "MEAL", "name": "Meal Allowance"},
        "employees": {"first_name": "Jane", "last_name": "Doe"},
        "metadata": {},
    }
    data.update(overrides)
    return data


class TestMetadataVariants:
    """Test the type-code keyed metadata union."""

    def test_resolves_variant_from_type_code(self):
        assert isinstance(parse_metadata("HOUSING", {"type": "ordinary"}), HousingMetadata)
        assert isinstance(parse_metadata("car", {"engine_cc": 1800}), CarMetadata)
        assert isinstance(parse_metadata("MEAL", None), MealMetadata)

    def test_unknown_type_code_keeps_raw_payload(self):
        metadata = parse_metadata("FUEL", {"litres": 40})
        assert isinstance(metadata, GenericMetadata)
        assert metadata.raw == {"litres": 40}

    def test_housing_rented_requires_rent(self):
        metadata = HousingMetadata("ordinary", is_employer_owned=False, rent_paid_to_employer=None)
        with pytest.raises(ValidationError):
            metadata.validate()

        HousingMetadata("ordinary", False, Decimal("300")).validate()
        HousingMetadata("farm", True).validate()

    def test_housing_unknown_type(self):
        with pytest.raises(ValidationError):
            HousingMetadata("castle").validate()

    def test_car_requires_engine_capacity(self):
        with pytest.raises(ValidationError):
            CarMetadata(engine_cc=0).validate()
        CarMetadata(engine_cc=1600).validate()

    def test_metadata_issue_on_allowance(self):
        rented = Allowance.from_api(allowance_payload(
            allowance_types={"code": "HOUSING", "name": "Housing"},
            metadata={"type": "ordinary", "is_employer_owned": False},
        ))
        meal = Allowance.from_api(allowance_payload())

        assert rented.metadata_issue == "Please enter the rent paid to employer for rented housing"
        assert meal.metadata_issue is None

    def test_car_rejects_non_numeric_capacity(self):
        with pytest.raises(ValidationError):
            parse_metadata("CAR", {"engine_cc": "big"})


class TestRecipientDisplay:
    """Test recipient labels for each assignment target."""

    @pytest.mark.parametrize(
        "applies_to,extra,expected",
        [
            ("INDIVIDUAL", {}, "Jane Doe"),
            ("INDIVIDUAL", {"employees": None}, "Unknown Employee"),
            ("COMPANY", {}, "All Employees"),
            ("DEPARTMENT", {"departments": {"name": "Finance"}}, "Finance"),
            ("DEPARTMENT", {}, "Unknown Department"),
            ("SUB_DEPARTMENT", {}, "Unknown Sub-department"),
            ("JOB_TITLE", {"job_titles": {"title": "Driver"}}, "Driver"),
            ("JOB_TITLE", {}, "Unknown Job Title"),
        ],
    )
    def test_recipient_display(self, applies_to, extra, expected):
        allowance = Allowance.from_api(allowance_payload(applies_to=applies_to, **extra))
        assert allowance.applies_to == AppliesTo(applies_to)
        assert allowance.recipient_display == expected


class TestSearch:
    """Test case-insensitive OR search."""

    def test_matches_term(self):
        assert matches_term("", "anything") is True
        assert matches_term("DOE", "Jane Doe", None) is True
        assert matches_term("x", None, "") is False

    def test_search_allowances(self):
        allowances = [
            Allowance.from_api(allowance_payload()),
            Allowance.from_api(allowance_payload(
                id="al-2",
                applies_to="COMPANY",
                allowance_types={"code": "HOUSING", "name": "Housing"},
                metadata={"type": "service_director"},
            )),
            Allowance.from_api(allowance_payload(
                id="al-3",
                applies_to="DEPARTMENT",
                departments={"name": "Logistics"},
                allowance_types={"code": "CAR", "name": "Company Car"},
                metadata={"engine_cc": 2000},
            )),
        ]

        def ids(term):
            return [a.allowance_id for a in search_allowances(allowances, term)]

        assert ids("jane") == ["al-1"]
        assert ids("director") == ["al-2"]
        assert ids("logistics") == ["al-3"]
        assert ids("CAR") == ["al-3"]
        assert ids("") == ["al-1", "al-2", "al-3"]
