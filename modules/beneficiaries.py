"""
modules/beneficiaries.py — Aggregate Record Coordinator
========================================================
Creates, updates and deletes a PWD record together with its guardians,
education history and support needs as one atomic unit.

Flow (every write):
    validate fields → validate foreign keys → BEGIN
        → parent row → child rows (payload order) → status
    → COMMIT → activity log → re-read the aggregate

Any failure between BEGIN and COMMIT rolls everything back, parent
included, and surfaces as one error. The activity log is written only
after the commit and can never undo it.
"""

import json
import logging
from typing import List, Optional

from sqlalchemy import func, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from config import settings
from core.documents import DocumentOwner
from core.errors import NotFoundError, ReferentialIntegrityError, RegistryError, TransactionFailure, ValidationError
from core.fields import calculate_age, validate_quarter, validate_year
from core.schemas import BeneficiaryPayload
from core.validation import validate_foreign_keys
from core.workflow import BENEFICIARY_STATUS, apply_status
from db.models import (
    Assistance, AssistanceRequest, AssistanceType, Community, DisabilityCategory, DisabilityType,
    Gender, PwdRecord, User, as_dict,
)
from db.session import transaction
from modules import activity_log, documents
from modules.children import STORES, ChildStore

logger = logging.getLogger("pwdregistry.beneficiaries")

REQUIRED_FIELDS = (
    "user_id", "quarter", "year", "gender_id", "full_name",
    "disability_category_id", "disability_type_id", "community_id",
)


def _blank(value) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _prepare_fields(fields: dict) -> dict:
    """Check the present parent fields and fill in derived ones."""
    if "quarter" in fields:
        validate_quarter(fields["quarter"])
    if "year" in fields:
        validate_year(fields["year"])
    if "status" in fields:
        BENEFICIARY_STATUS.validate(fields["status"])

    # Age follows dob unless the caller gave one explicitly
    if fields.get("dob") and fields.get("age") is None:
        fields["age"] = calculate_age(fields["dob"])
    return fields


async def _check_references(db: AsyncSession, fields: dict):
    errors = await validate_foreign_keys(db, fields)
    if errors:
        raise ReferentialIntegrityError("Invalid references: " + "; ".join(errors), errors)


async def _write_children(db: AsyncSession, store: ChildStore, pwd_id: int, entries, insert_only: bool = False):
    """
    Route each entry to update (it carries its own id) or create (it does
    not). None or [] leaves the collection untouched.
    """
    for entry in entries or []:
        fields = entry.model_dump(exclude_unset=True)
        row_id = fields.pop(store.pk, None)
        if insert_only:
            row_id = None
        try:
            if row_id is None:
                await store.create(db, {**fields, "pwd_id": pwd_id})
            else:
                await store.update(db, row_id, fields, pwd_id=pwd_id)
        except RegistryError as exc:
            action = "create" if row_id is None else "update"
            raise exc.with_context(f"Failed to {action} {store.label}") from exc


async def _step(label: str, awaitable):
    """Run one dependent-deletion step, naming it if the database refuses."""
    try:
        return await awaitable
    except SQLAlchemyError as exc:
        raise TransactionFailure(f"Failed to {label}: {exc}") from exc


# ── Reads ─────────────────────────────────────────────────────────────────────
def _detail_query():
    return (
        select(
            PwdRecord,
            Gender.gender_name,
            Community.community_name,
            DisabilityCategory.category_name,
            DisabilityType.type_name,
            AssistanceType.assistance_type_name,
            User.username,
        )
        .outerjoin(Gender, Gender.gender_id == PwdRecord.gender_id)
        .outerjoin(Community, Community.community_id == PwdRecord.community_id)
        .outerjoin(DisabilityCategory, DisabilityCategory.category_id == PwdRecord.disability_category_id)
        .outerjoin(DisabilityType, DisabilityType.type_id == PwdRecord.disability_type_id)
        .outerjoin(AssistanceType, AssistanceType.assistance_type_id == PwdRecord.assistance_type_needed_id)
        .outerjoin(User, User.user_id == PwdRecord.user_id)
        .execution_options(populate_existing=True)
    )


def _serialize(row) -> dict:
    record, gender, community, category, disability_type, assistance_type, username = row
    data = as_dict(record)
    # Rows written by older importers may hold the list as a JSON string
    if isinstance(data["supporting_documents"], str):
        data["supporting_documents"] = json.loads(data["supporting_documents"] or "null")
    data.update({
        "gender_name": gender,
        "community_name": community,
        "disability_category": category,
        "disability_type": disability_type,
        "assistance_type_name": assistance_type,
        "registered_by": username,
    })
    return data


async def get_aggregate(db: AsyncSession, pwd_id: int) -> dict:
    """PWD record with reference names, all child collections and its documents."""
    row = (await db.execute(_detail_query().where(PwdRecord.pwd_id == pwd_id))).first()
    if row is None:
        raise NotFoundError(f"PWD record not found with ID: {pwd_id}")

    data = _serialize(row)
    for name, store in STORES.items():
        data[name] = [as_dict(child) for child in await store.list_by_parent(db, pwd_id)]
    data["documents"] = [
        as_dict(doc) for doc in await documents.list_by_owner(db, DocumentOwner.beneficiary(pwd_id))
    ]
    return data


def _filters(
    status: Optional[str] = None,
    quarter: Optional[str] = None,
    year: Optional[int] = None,
    community_id: Optional[int] = None,
    disability_category_id: Optional[int] = None,
    gender_id: Optional[int] = None,
    search: Optional[str] = None,
) -> list:
    conditions = []
    if status is not None:
        conditions.append(PwdRecord.status == BENEFICIARY_STATUS.validate(status))
    if quarter is not None:
        conditions.append(PwdRecord.quarter == validate_quarter(quarter))
    if year is not None:
        conditions.append(PwdRecord.year == year)
    if community_id is not None:
        conditions.append(PwdRecord.community_id == community_id)
    if disability_category_id is not None:
        conditions.append(PwdRecord.disability_category_id == disability_category_id)
    if gender_id is not None:
        conditions.append(PwdRecord.gender_id == gender_id)
    if search:
        pattern = f"%{search}%"
        conditions.append(or_(
            PwdRecord.full_name.like(pattern),
            PwdRecord.gh_card_number.like(pattern),
            PwdRecord.nhis_number.like(pattern),
        ))
    return conditions


async def count_beneficiaries(db: AsyncSession, **filters) -> int:
    query = select(func.count(PwdRecord.pwd_id)).where(*_filters(**filters))
    return (await db.execute(query)).scalar_one()


async def list_beneficiaries(db: AsyncSession, limit: Optional[int] = None, offset: int = 0, **filters) -> dict:
    """One page of PWD records, newest first, without child collections."""
    limit = min(limit or settings.DEFAULT_PAGE_SIZE, settings.MAX_PAGE_SIZE)
    query = (
        _detail_query()
        .where(*_filters(**filters))
        .order_by(PwdRecord.created_at.desc(), PwdRecord.pwd_id.desc())
        .limit(limit)
        .offset(offset)
    )
    rows = (await db.execute(query)).all()
    return {
        "pwds": [_serialize(row) for row in rows],
        "total": await count_beneficiaries(db, **filters),
        "limit": limit,
        "offset": offset,
    }


# ── Writes ────────────────────────────────────────────────────────────────────
async def create_aggregate(db: AsyncSession, payload: BeneficiaryPayload, actor_id: Optional[int] = None) -> dict:
    """
    Insert a PWD record and every child entry in the payload. Child ids in
    the payload are ignored: on create everything is new.
    """
    fields = payload.parent_fields()
    missing = [name for name in REQUIRED_FIELDS if _blank(fields.get(name))]
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}", missing)
    fields = _prepare_fields(fields)
    await _check_references(db, fields)

    status = fields.pop("status", None)
    async with transaction(db, "create PWD record"):
        record = PwdRecord(**fields)
        db.add(record)
        await db.flush()
        pwd_id = record.pwd_id

        for name, store in STORES.items():
            await _write_children(db, store, pwd_id, getattr(payload, name), insert_only=True)

        if status is not None:
            await apply_status(db, PwdRecord, pwd_id, BENEFICIARY_STATUS, status)

    logger.info(f"PWD record {pwd_id} created")
    await activity_log.record(db, actor_id, f"Created PWD record for {fields['full_name']} with ID {pwd_id}")
    return await get_aggregate(db, pwd_id)


async def update_aggregate(
    db: AsyncSession, pwd_id: int, payload: BeneficiaryPayload, actor_id: Optional[int] = None,
) -> dict:
    """
    Partial update: only fields present in the payload change. Child entries
    with an id update that row (it must belong to this record), entries
    without one are inserted. Rows not mentioned are left alone.
    """
    record = await db.get(PwdRecord, pwd_id)
    if record is None:
        raise NotFoundError(f"PWD record not found with ID: {pwd_id}")
    full_name = record.full_name
    previous_status = record.status

    fields = payload.parent_fields()
    cleared = [name for name in REQUIRED_FIELDS if name in fields and _blank(fields[name])]
    if cleared:
        raise ValidationError(f"Required fields cannot be empty: {', '.join(cleared)}", cleared)
    fields = _prepare_fields(fields)

    # A new type must match the record's category and vice versa
    references = dict(fields)
    if "disability_type_id" in fields or "disability_category_id" in fields:
        references.setdefault("disability_type_id", record.disability_type_id)
        references.setdefault("disability_category_id", record.disability_category_id)
    await _check_references(db, references)

    status = fields.pop("status", None)
    async with transaction(db, "update PWD record"):
        for key, value in fields.items():
            setattr(record, key, value)
        await db.flush()

        for name, store in STORES.items():
            await _write_children(db, store, pwd_id, getattr(payload, name))

        if status is not None:
            await apply_status(db, PwdRecord, pwd_id, BENEFICIARY_STATUS, status)

    activity = f"Updated PWD record for {full_name} with ID {pwd_id}"
    if status is not None and status != previous_status:
        activity += f"; status from {previous_status} to {status}"
    logger.info(f"PWD record {pwd_id} updated")
    await activity_log.record(db, actor_id, activity)
    return await get_aggregate(db, pwd_id)


async def delete_aggregate(db: AsyncSession, pwd_id: int, actor_id: Optional[int] = None) -> None:
    """
    Remove a PWD record with its children and documents. Refused while any
    assistance request or assistance record still points at it.
    """
    record = await db.get(PwdRecord, pwd_id)
    if record is None:
        raise NotFoundError(f"PWD record not found with ID: {pwd_id}")
    full_name = record.full_name

    blockers: List[str] = []
    requests = (await db.execute(
        select(func.count(AssistanceRequest.request_id)).where(AssistanceRequest.beneficiary_id == pwd_id)
    )).scalar_one()
    if requests:
        blockers.append(f"{requests} assistance requests")
    legacy = (await db.execute(
        select(func.count(Assistance.assistance_id)).where(Assistance.beneficiary_id == pwd_id)
    )).scalar_one()
    if legacy:
        blockers.append(f"{legacy} assistance records")
    if blockers:
        raise ReferentialIntegrityError(
            f"Cannot delete PWD record because it has {' and '.join(blockers)}. Delete those first.",
            blockers,
        )

    async with transaction(db, "delete PWD record"):
        for store in STORES.values():
            await _step(f"delete {store.label}s", store.delete_all_by_parent(db, pwd_id))
        stored_paths = await _step(
            "delete supporting documents",
            documents.delete_all_by_owner(db, DocumentOwner.beneficiary(pwd_id)),
        )
        await _step("delete PWD record", _delete_row(db, record))

    await documents.discard_files(stored_paths)
    logger.info(f"PWD record {pwd_id} deleted")
    await activity_log.record(db, actor_id, f"Deleted PWD record for {full_name} with ID {pwd_id}")


async def _delete_row(db: AsyncSession, row):
    await db.delete(row)
    await db.flush()


async def set_beneficiary_status(
    db: AsyncSession, pwd_id: int, status: str, actor_id: Optional[int] = None,
) -> dict:
    if _blank(status):
        raise ValidationError("Status field is required")

    async with transaction(db, "update PWD status"):
        record, previous = await apply_status(db, PwdRecord, pwd_id, BENEFICIARY_STATUS, status)
        full_name = record.full_name

    await activity_log.record(
        db, actor_id, f"Updated PWD status for {full_name} (ID {pwd_id}) from {previous} to {status}"
    )
    return await get_aggregate(db, pwd_id)
