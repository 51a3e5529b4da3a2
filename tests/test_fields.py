from datetime import date

import pytest

from core.errors import ReferentialIntegrityError, RegistryError, ValidationError
from core.fields import calculate_age, normalize_amount, validate_quarter, validate_year
from core.validation import validate_foreign_keys


def test_calculate_age_counts_whole_years():
    assert calculate_age(date(2000, 6, 15), today=date(2024, 6, 14)) == 23
    assert calculate_age(date(2000, 6, 15), today=date(2024, 6, 15)) == 24


def test_validate_year_bounds():
    today = date(2024, 3, 1)
    assert validate_year(2025, today=today) == 2025
    with pytest.raises(ValidationError):
        validate_year(2026, today=today)
    with pytest.raises(ValidationError):
        validate_year(1999, today=today)
    with pytest.raises(ValidationError):
        validate_year(True, today=today)
    with pytest.raises(ValidationError):
        validate_year("2024", today=today)


def test_validate_quarter():
    assert validate_quarter("Q4") == "Q4"
    with pytest.raises(ValidationError):
        validate_quarter("q4")


def test_normalize_amount():
    assert normalize_amount("") is None
    assert normalize_amount(None) is None
    assert normalize_amount("150.50") == 150.5
    with pytest.raises(ValidationError):
        normalize_amount("a lot")


def test_with_context_keeps_error_type():
    error = ReferentialIntegrityError("Gender ID 9 does not exist", ["Gender ID 9 does not exist"])

    wrapped = error.with_context("Failed to create guardian")

    assert isinstance(wrapped, ReferentialIntegrityError)
    assert isinstance(wrapped, RegistryError)
    assert str(wrapped) == "Failed to create guardian: Gender ID 9 does not exist"
    assert wrapped.errors == error.errors


@pytest.mark.asyncio
async def test_foreign_keys_all_valid(db, seed):
    payload = {
        "user_id": seed["officer"],
        "gender_id": seed["male"],
        "disability_category_id": seed["sensory"],
        "disability_type_id": seed["visual"],
        "community_id": None,
    }
    assert await validate_foreign_keys(db, payload) == []


@pytest.mark.asyncio
async def test_foreign_keys_collects_every_problem(db, seed):
    errors = await validate_foreign_keys(db, {
        "user_id": 321,
        "assistance_type_id": 654,
        "disability_category_id": seed["physical"],
        "disability_type_id": seed["visual"],
    })

    assert errors == [
        "User ID 321 does not exist",
        "Assistance type ID 654 does not exist",
        f"Disability type ID {seed['visual']} does not belong to category ID {seed['physical']}",
    ]
