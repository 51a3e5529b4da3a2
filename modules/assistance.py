"""
modules/assistance.py — Assistance Distribution Records
========================================================
The older record of assistance actually handed out to a beneficiary
(date of support, pre-assessment flag). Its status vocabulary is
pending | approved | disapproved, separate from assistance requests.
"""

import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from core.errors import NotFoundError, ReferentialIntegrityError, ValidationError
from core.schemas import AssistancePayload
from core.validation import validate_foreign_keys
from core.workflow import ASSISTANCE_STATUS, apply_status
from db.models import Assistance, AssistanceType, PwdRecord, as_dict
from db.session import transaction
from modules import activity_log

logger = logging.getLogger("pwdregistry.assistance")

REQUIRED_FIELDS = ("admin_id", "assistance_type_id", "date_of_support", "beneficiary_id")


def _detail_query():
    return (
        select(Assistance, PwdRecord.full_name, AssistanceType.assistance_type_name)
        .outerjoin(PwdRecord, PwdRecord.pwd_id == Assistance.beneficiary_id)
        .outerjoin(AssistanceType, AssistanceType.assistance_type_id == Assistance.assistance_type_id)
        .execution_options(populate_existing=True)
    )


def _serialize(row) -> dict:
    assistance, beneficiary_name, type_name = row
    data = as_dict(assistance)
    data["beneficiary_name"] = beneficiary_name
    data["assistance_type_name"] = type_name
    return data


async def get_assistance(db: AsyncSession, assistance_id: int) -> dict:
    row = (await db.execute(_detail_query().where(Assistance.assistance_id == assistance_id))).first()
    if row is None:
        raise NotFoundError(f"Assistance record not found with ID: {assistance_id}")
    return _serialize(row)


async def list_assistance(
    db: AsyncSession, status: Optional[str] = None, beneficiary_id: Optional[int] = None,
) -> list:
    conditions = []
    if status is not None:
        conditions.append(Assistance.status == ASSISTANCE_STATUS.validate(status))
    if beneficiary_id is not None:
        conditions.append(Assistance.beneficiary_id == beneficiary_id)
    rows = (await db.execute(
        _detail_query().where(*conditions).order_by(Assistance.date_of_support.desc(), Assistance.assistance_id.desc())
    )).all()
    return [_serialize(row) for row in rows]


async def create_assistance(db: AsyncSession, payload: AssistancePayload, actor_id: Optional[int] = None) -> dict:
    fields = payload.model_dump(exclude_unset=True)
    if fields.get("admin_id") is None and actor_id is not None:
        fields["admin_id"] = actor_id
    missing = [name for name in REQUIRED_FIELDS if fields.get(name) is None]
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}", missing)
    if "status" in fields:
        ASSISTANCE_STATUS.validate(fields["status"])

    errors = await validate_foreign_keys(db, fields)
    if errors:
        raise ReferentialIntegrityError("Invalid references: " + "; ".join(errors), errors)

    async with transaction(db, "create assistance record"):
        assistance = Assistance(**fields)
        db.add(assistance)
        await db.flush()
        assistance_id = assistance.assistance_id

    await activity_log.record(db, actor_id, f"Created assistance record #{assistance_id}")
    return await get_assistance(db, assistance_id)


async def update_assistance(
    db: AsyncSession, assistance_id: int, payload: AssistancePayload, actor_id: Optional[int] = None,
) -> dict:
    """Partial update: only the fields present in the payload change."""
    assistance = await db.get(Assistance, assistance_id)
    if assistance is None:
        raise NotFoundError(f"Assistance record not found with ID: {assistance_id}")

    fields = payload.model_dump(exclude_unset=True)
    cleared = [name for name in REQUIRED_FIELDS if name in fields and fields[name] is None]
    if cleared:
        raise ValidationError(f"Required fields cannot be empty: {', '.join(cleared)}", cleared)
    status = fields.pop("status", None)
    if status is not None:
        ASSISTANCE_STATUS.validate(status)

    errors = await validate_foreign_keys(db, fields)
    if errors:
        raise ReferentialIntegrityError("Invalid references: " + "; ".join(errors), errors)

    async with transaction(db, "update assistance record"):
        for key, value in fields.items():
            setattr(assistance, key, value)
        await db.flush()
        if status is not None:
            await apply_status(db, Assistance, assistance_id, ASSISTANCE_STATUS, status)

    await activity_log.record(db, actor_id, f"Updated assistance record #{assistance_id}")
    return await get_assistance(db, assistance_id)


async def delete_assistance(db: AsyncSession, assistance_id: int, actor_id: Optional[int] = None) -> None:
    assistance = await db.get(Assistance, assistance_id)
    if assistance is None:
        raise NotFoundError(f"Assistance record not found with ID: {assistance_id}")

    async with transaction(db, "delete assistance record"):
        await db.delete(assistance)
        await db.flush()

    await activity_log.record(db, actor_id, f"Deleted assistance record #{assistance_id}")


async def set_assistance_status(
    db: AsyncSession,
    assistance_id: int,
    status: str,
    notes: Optional[str] = None,
    actor_id: Optional[int] = None,
) -> dict:
    async with transaction(db, "update assistance status"):
        assistance, previous = await apply_status(
            db, Assistance, assistance_id, ASSISTANCE_STATUS, status,
            notes=notes, notes_field="assessment_notes",
        )
        beneficiary = await db.get(PwdRecord, assistance.beneficiary_id)
        beneficiary_name = beneficiary.full_name if beneficiary else f"ID {assistance.beneficiary_id}"

    await activity_log.record(
        db, actor_id,
        f"Updated assistance #{assistance_id} for {beneficiary_name} from {previous} to {status}",
    )
    return await get_assistance(db, assistance_id)
