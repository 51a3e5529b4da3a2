"""
core/validation.py — Foreign Key Validator
===========================================
Checks that every reference id in a write payload exists before anything is
written. Returns the list of problems instead of raising, so a caller can
report all of them at once; an empty list means "go ahead".

Read-only: only existence lookups, nothing is added to the session.
"""

import logging
from typing import Any, List, Mapping

from sqlalchemy.ext.asyncio import AsyncSession

from db.models import (
    AssistanceType, Community, DisabilityCategory, DisabilityType, Gender, PwdRecord, User,
)

logger = logging.getLogger("pwdregistry.validation")

# payload key → (table, label used in the message)
REFERENCE_KEYS = {
    "user_id": (User, "User ID"),
    "requested_by": (User, "User ID"),
    "admin_id": (User, "User ID"),
    "gender_id": (Gender, "Gender ID"),
    "disability_category_id": (DisabilityCategory, "Disability category ID"),
    "disability_type_id": (DisabilityType, "Disability type ID"),
    "community_id": (Community, "Community ID"),
    "assistance_type_needed_id": (AssistanceType, "Assistance type ID"),
    "assistance_type_id": (AssistanceType, "Assistance type ID"),
    "beneficiary_id": (PwdRecord, "Beneficiary ID"),
}


async def validate_foreign_keys(db: AsyncSession, payload: Mapping[str, Any]) -> List[str]:
    """
    Validate every recognised reference key present (and not None) in `payload`.
    When both a disability category and type are given, the type must belong
    to that category.
    """
    errors: List[str] = []
    found = {}

    for key, (model, label) in REFERENCE_KEYS.items():
        value = payload.get(key)
        if value is None:
            continue
        row = await db.get(model, value)
        if row is None:
            errors.append(f"{label} {value} does not exist")
        found[key] = row

    disability_type = found.get("disability_type_id")
    category_id = payload.get("disability_category_id")
    if disability_type is not None and category_id is not None and disability_type.category_id != category_id:
        errors.append(
            f"Disability type ID {disability_type.type_id} does not belong to category ID {category_id}"
        )

    if errors:
        logger.info(f"Foreign key validation failed: {errors}")
    return errors
