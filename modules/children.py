"""
modules/children.py — Child Aggregate Stores
=============================================
Guardians, education history and support needs all hang off a PWD record
through pwd_id and share one access pattern, so one ChildStore class
serves all three.

Store methods only add / flush / delete on the session they are given.
They never commit or roll back; whoever opened the transaction
(normally modules/beneficiaries.py) decides when it ends.

The *_child functions at the bottom are the single-row write paths for
callers working on one child outside an aggregate write; each runs in its
own transaction.
"""

import logging
from typing import List, Optional

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from core.errors import NotFoundError, ValidationError
from db.models import PwdEducation, PwdGuardian, PwdRecord, PwdSupportNeed, as_dict
from db.session import transaction
from modules import activity_log

logger = logging.getLogger("pwdregistry.children")


def _blank(value) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


class ChildStore:
    """Data access for one child table keyed by pwd_id."""

    def __init__(self, model, pk: str, required: str, label: str):
        self.model = model
        self.pk = pk
        self.required = required
        self.label = label
        self.columns = {c.key for c in model.__table__.columns} - {pk}

    def _clean(self, fields: dict) -> dict:
        return {k: v for k, v in fields.items() if k in self.columns}

    async def list_by_parent(self, db: AsyncSession, pwd_id: int) -> list:
        result = await db.execute(
            select(self.model)
            .where(self.model.pwd_id == pwd_id)
            .order_by(getattr(self.model, self.pk))
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    async def get_by_id(self, db: AsyncSession, row_id: int):
        return await db.get(self.model, row_id)

    async def create(self, db: AsyncSession, fields: dict):
        data = self._clean(fields)
        missing = [name for name in ("pwd_id", self.required) if _blank(data.get(name))]
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

        row = self.model(**data)
        db.add(row)
        await db.flush()
        return row

    async def update(self, db: AsyncSession, row_id: int, fields: dict, pwd_id: Optional[int] = None):
        """
        Apply the given fields to an existing row. With `pwd_id`, the row
        must also belong to that PWD record. A row never changes owner.
        """
        row = await self.get_by_id(db, row_id)
        if row is None or (pwd_id is not None and row.pwd_id != pwd_id):
            owner = f" for PWD record {pwd_id}" if pwd_id is not None else ""
            raise NotFoundError(f"{self.label.capitalize()} not found with ID: {row_id}{owner}")

        data = self._clean(fields)
        data.pop("pwd_id", None)
        if self.required in data and _blank(data[self.required]):
            raise ValidationError(f"{self.required} cannot be empty")

        for key, value in data.items():
            setattr(row, key, value)
        await db.flush()
        return row

    async def delete(self, db: AsyncSession, row_id: int):
        row = await self.get_by_id(db, row_id)
        if row is None:
            raise NotFoundError(f"{self.label.capitalize()} not found with ID: {row_id}")
        await db.delete(row)
        await db.flush()
        return row

    async def delete_all_by_parent(self, db: AsyncSession, pwd_id: int) -> int:
        result = await db.execute(delete(self.model).where(self.model.pwd_id == pwd_id))
        return result.rowcount


guardians = ChildStore(PwdGuardian, "guardian_id", "name", "guardian")
education = ChildStore(PwdEducation, "education_id", "education_level", "education record")
support_needs = ChildStore(PwdSupportNeed, "need_id", "assistance_needed", "support need")

STORES = {
    "guardians": guardians,
    "education": education,
    "support_needs": support_needs,
}


# ── Single-row write paths ────────────────────────────────────────────────────
async def _require_parent(db: AsyncSession, pwd_id: int) -> PwdRecord:
    parent = await db.get(PwdRecord, pwd_id)
    if parent is None:
        raise NotFoundError(f"PWD record not found with ID: {pwd_id}")
    return parent


async def list_children(db: AsyncSession, store: ChildStore, pwd_id: int) -> List[dict]:
    await _require_parent(db, pwd_id)
    return [as_dict(row) for row in await store.list_by_parent(db, pwd_id)]


async def create_child(
    db: AsyncSession, store: ChildStore, pwd_id: int, fields: dict, actor_id: Optional[int] = None,
) -> dict:
    async with transaction(db, f"create {store.label}"):
        await _require_parent(db, pwd_id)
        row = await store.create(db, {**fields, "pwd_id": pwd_id})
        data = as_dict(row)

    await activity_log.record(db, actor_id, f"Added {store.label} #{data[store.pk]} to PWD record {pwd_id}")
    return data


async def update_child(
    db: AsyncSession, store: ChildStore, pwd_id: int, row_id: int, fields: dict,
    actor_id: Optional[int] = None,
) -> dict:
    async with transaction(db, f"update {store.label}"):
        await _require_parent(db, pwd_id)
        row = await store.update(db, row_id, fields, pwd_id=pwd_id)
        data = as_dict(row)

    await activity_log.record(db, actor_id, f"Updated {store.label} #{row_id} of PWD record {pwd_id}")
    return data


async def delete_child(
    db: AsyncSession, store: ChildStore, pwd_id: int, row_id: int, actor_id: Optional[int] = None,
) -> None:
    async with transaction(db, f"delete {store.label}"):
        await _require_parent(db, pwd_id)
        row = await store.get_by_id(db, row_id)
        if row is None or row.pwd_id != pwd_id:
            raise NotFoundError(f"{store.label.capitalize()} not found with ID: {row_id} for PWD record {pwd_id}")
        await store.delete(db, row_id)

    await activity_log.record(db, actor_id, f"Deleted {store.label} #{row_id} of PWD record {pwd_id}")
