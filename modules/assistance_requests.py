"""
modules/assistance_requests.py — Assistance Requests
=====================================================
Requests for support raised against a PWD record, reviewed by an admin
and moved through pending → review → ready_to_access → assessed / declined
(any order; see core/workflow.py).
"""

import logging
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from config import settings
from core.documents import DocumentOwner
from core.errors import NotFoundError, ReferentialIntegrityError, ValidationError
from core.fields import normalize_amount
from core.schemas import AssistanceRequestPayload
from core.validation import validate_foreign_keys
from core.workflow import REQUEST_STATUS, apply_status
from db.models import AssistanceRequest, AssistanceType, PwdRecord, User, as_dict
from db.session import transaction
from modules import activity_log, documents

logger = logging.getLogger("pwdregistry.assistance_requests")

REQUIRED_FIELDS = ("assistance_type_id", "beneficiary_id", "description")


def _prepare_fields(fields: dict) -> dict:
    if "amount_value_cost" in fields:
        fields["amount_value_cost"] = normalize_amount(fields["amount_value_cost"])
    if "status" in fields:
        REQUEST_STATUS.validate(fields["status"])
    return fields


async def _check_references(db: AsyncSession, fields: dict):
    errors = await validate_foreign_keys(db, fields)
    if errors:
        raise ReferentialIntegrityError("Invalid references: " + "; ".join(errors), errors)


def _detail_query():
    return (
        select(
            AssistanceRequest,
            PwdRecord.full_name,
            AssistanceType.assistance_type_name,
            User.username,
        )
        .outerjoin(PwdRecord, PwdRecord.pwd_id == AssistanceRequest.beneficiary_id)
        .outerjoin(AssistanceType, AssistanceType.assistance_type_id == AssistanceRequest.assistance_type_id)
        .outerjoin(User, User.user_id == AssistanceRequest.requested_by)
        .execution_options(populate_existing=True)
    )


def _serialize(row) -> dict:
    request, beneficiary_name, type_name, username = row
    data = as_dict(request)
    data.update({
        "beneficiary_name": beneficiary_name,
        "assistance_type_name": type_name,
        "requested_by_name": username,
    })
    return data


async def get_request(db: AsyncSession, request_id: int) -> dict:
    row = (await db.execute(_detail_query().where(AssistanceRequest.request_id == request_id))).first()
    if row is None:
        raise NotFoundError(f"Assistance request not found with ID: {request_id}")
    data = _serialize(row)
    data["documents"] = [
        as_dict(doc) for doc in await documents.list_by_owner(db, DocumentOwner.assistance_request(request_id))
    ]
    return data


async def list_requests(
    db: AsyncSession,
    status: Optional[str] = None,
    beneficiary_id: Optional[int] = None,
    requested_by: Optional[int] = None,
    limit: Optional[int] = None,
    offset: int = 0,
) -> dict:
    conditions = []
    if status is not None:
        conditions.append(AssistanceRequest.status == REQUEST_STATUS.validate(status))
    if beneficiary_id is not None:
        conditions.append(AssistanceRequest.beneficiary_id == beneficiary_id)
    if requested_by is not None:
        conditions.append(AssistanceRequest.requested_by == requested_by)

    limit = min(limit or settings.DEFAULT_PAGE_SIZE, settings.MAX_PAGE_SIZE)
    rows = (await db.execute(
        _detail_query()
        .where(*conditions)
        .order_by(AssistanceRequest.created_at.desc(), AssistanceRequest.request_id.desc())
        .limit(limit)
        .offset(offset)
    )).all()
    total = (await db.execute(
        select(func.count(AssistanceRequest.request_id)).where(*conditions)
    )).scalar_one()

    return {"requests": [_serialize(row) for row in rows], "total": total, "limit": limit, "offset": offset}


async def create_request(
    db: AsyncSession, payload: AssistanceRequestPayload, actor_id: Optional[int] = None,
) -> dict:
    fields = payload.model_dump(exclude_unset=True)
    missing = [name for name in REQUIRED_FIELDS if fields.get(name) in (None, "")]
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}", missing)
    fields = _prepare_fields(fields)
    if fields.get("requested_by") is None and actor_id is not None:
        fields["requested_by"] = actor_id
    await _check_references(db, fields)

    async with transaction(db, "create assistance request"):
        request = AssistanceRequest(**fields)
        db.add(request)
        await db.flush()
        request_id = request.request_id

    await activity_log.record(
        db, actor_id, f"Created assistance request ID {request_id} for beneficiary ID {fields['beneficiary_id']}"
    )
    return await get_request(db, request_id)


async def update_request(
    db: AsyncSession, request_id: int, payload: AssistanceRequestPayload, actor_id: Optional[int] = None,
) -> dict:
    request = await db.get(AssistanceRequest, request_id)
    if request is None:
        raise NotFoundError(f"Assistance request not found with ID: {request_id}")

    fields = payload.model_dump(exclude_unset=True)
    cleared = [name for name in REQUIRED_FIELDS if name in fields and fields[name] in (None, "")]
    if cleared:
        raise ValidationError(f"Required fields cannot be empty: {', '.join(cleared)}", cleared)
    fields = _prepare_fields(fields)
    await _check_references(db, fields)

    status = fields.pop("status", None)
    async with transaction(db, "update assistance request"):
        for key, value in fields.items():
            setattr(request, key, value)
        await db.flush()
        if status is not None:
            await apply_status(db, AssistanceRequest, request_id, REQUEST_STATUS, status)

    await activity_log.record(db, actor_id, f"Updated assistance request ID {request_id}")
    return await get_request(db, request_id)


async def delete_request(db: AsyncSession, request_id: int, actor_id: Optional[int] = None) -> None:
    request = await db.get(AssistanceRequest, request_id)
    if request is None:
        raise NotFoundError(f"Assistance request not found with ID: {request_id}")

    async with transaction(db, "delete assistance request"):
        stored_paths = await documents.delete_all_by_owner(db, DocumentOwner.assistance_request(request_id))
        await db.delete(request)
        await db.flush()

    await documents.discard_files(stored_paths)
    await activity_log.record(db, actor_id, f"Deleted assistance request ID {request_id}")


async def set_request_status(
    db: AsyncSession,
    request_id: int,
    status: str,
    notes: Optional[str] = None,
    actor_id: Optional[int] = None,
) -> dict:
    """Change the status; admin review notes, when given, are saved with it."""
    async with transaction(db, "update assistance request status"):
        request, previous = await apply_status(
            db, AssistanceRequest, request_id, REQUEST_STATUS, status,
            notes=notes, notes_field="admin_review_notes",
        )
        beneficiary = await db.get(PwdRecord, request.beneficiary_id)
        beneficiary_name = beneficiary.full_name if beneficiary else f"ID {request.beneficiary_id}"

    await activity_log.record(
        db, actor_id,
        f"Updated status of assistance request ID {request_id} from '{previous}' to '{status}' "
        f"for beneficiary {beneficiary_name}",
    )
    return await get_request(db, request_id)
