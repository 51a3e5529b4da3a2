"""
core/schemas.py — Write payloads for the core operations
=========================================================
Every field is optional at this layer; which ones are required depends on
the operation (create vs. partial update) and is checked by the module that
runs it, so the same payload type serves both.

A field counts as "present" only if the caller set it:
`model_dump(exclude_unset=True)` is what the write paths use, so an omitted
field is never written as NULL.
"""

from datetime import date
from typing import List, Optional, Union

from pydantic import BaseModel


# ── Child entries ─────────────────────────────────────────────────────────────
# An entry carrying its own id updates that row; without one it is a new row.
class GuardianEntry(BaseModel):
    guardian_id: Optional[int] = None
    name: Optional[str] = None
    occupation: Optional[str] = None
    phone: Optional[str] = None
    relationship: Optional[str] = None


class EducationEntry(BaseModel):
    education_id: Optional[int] = None
    education_level: Optional[str] = None
    school_name: Optional[str] = None


class SupportNeedEntry(BaseModel):
    need_id: Optional[int] = None
    assistance_needed: Optional[str] = None


# ── Beneficiary aggregate ─────────────────────────────────────────────────────
class BeneficiaryPayload(BaseModel):
    user_id: Optional[int] = None
    quarter: Optional[str] = None            # Q1 | Q2 | Q3 | Q4
    year: Optional[int] = None
    gender_id: Optional[int] = None
    full_name: Optional[str] = None
    occupation: Optional[str] = None
    contact: Optional[str] = None
    dob: Optional[date] = None
    age: Optional[int] = None                # derived from dob when not given
    disability_category_id: Optional[int] = None
    disability_type_id: Optional[int] = None
    gh_card_number: Optional[str] = None
    nhis_number: Optional[str] = None
    community_id: Optional[int] = None
    assistance_type_needed_id: Optional[int] = None
    supporting_documents: Optional[list] = None
    status: Optional[str] = None
    profile_image: Optional[str] = None

    guardians: Optional[List[GuardianEntry]] = None
    education: Optional[List[EducationEntry]] = None
    support_needs: Optional[List[SupportNeedEntry]] = None

    def parent_fields(self) -> dict:
        """Fields the caller set on the PWD row itself, children excluded."""
        return self.model_dump(exclude_unset=True, exclude={"guardians", "education", "support_needs"})


# ── Assistance ────────────────────────────────────────────────────────────────
class AssistanceRequestPayload(BaseModel):
    assistance_type_id: Optional[int] = None
    beneficiary_id: Optional[int] = None
    requested_by: Optional[int] = None
    description: Optional[str] = None
    amount_value_cost: Optional[Union[float, str]] = None   # "" is stored as NULL
    admin_review_notes: Optional[str] = None
    status: Optional[str] = None


class AssistancePayload(BaseModel):
    admin_id: Optional[int] = None
    assistance_type_id: Optional[int] = None
    date_of_support: Optional[date] = None
    beneficiary_id: Optional[int] = None
    pre_assessment: Optional[bool] = None
    status: Optional[str] = None
    assessment_notes: Optional[str] = None


class StatusChange(BaseModel):
    status: str
    notes: Optional[str] = None
