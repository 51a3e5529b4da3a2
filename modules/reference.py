"""
modules/reference.py — Reference Data Store
============================================
Lookup tables the registry validates against: disability categories and
types, communities, assistance types, genders, roles and users.

They all follow the same rules:
    - the name is required and unique (exact, case-sensitive comparison,
      the row being updated excluded)
    - ids they point at must exist (a disability type's category, a user's role)
    - a row that other rows still use cannot be deleted
    - some fields are frozen while the row is in use (a disability type's
      category, so records never end up with a type outside their category)
"""

import logging
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from core.errors import NotFoundError, ReferentialIntegrityError, ValidationError
from db.models import (
    ActivityLog, Assistance, AssistanceRequest, AssistanceType, Community, DisabilityCategory,
    DisabilityType, Gender, PwdRecord, Role, User, as_dict,
)
from db.session import transaction

logger = logging.getLogger("pwdregistry.reference")


class LookupTable:
    """CRUD for one reference table."""

    def __init__(
        self,
        model,
        pk: str,
        name_field: str,
        label: str,
        extra_fields: Sequence[str] = (),
        required_extra: Sequence[str] = (),
        references: Optional[Dict[str, Tuple[type, str]]] = None,
        dependents: Iterable[Tuple[object, str]] = (),
        unique_extra: Sequence[str] = (),
        locked_when_used: Sequence[str] = (),
    ):
        self.model = model
        self.pk = pk
        self.name_field = name_field
        self.label = label
        self.fields = (name_field, *extra_fields)
        self.required_extra = tuple(required_extra)
        self.references = references or {}
        self.dependents = list(dependents)
        self.unique_extra = tuple(unique_extra)
        self.locked_when_used = tuple(locked_when_used)

    @property
    def _name_column(self):
        return getattr(self.model, self.name_field)

    def _label_for(self, field: str) -> str:
        return "name" if field == self.name_field else field

    async def exists(self, db: AsyncSession, row_id: int) -> bool:
        return await db.get(self.model, row_id) is not None

    async def list(self, db: AsyncSession, **filters) -> List[dict]:
        conditions = [getattr(self.model, key) == value for key, value in filters.items() if value is not None]
        result = await db.execute(select(self.model).where(*conditions).order_by(self._name_column))
        return [as_dict(row) for row in result.scalars().all()]

    async def get(self, db: AsyncSession, row_id: int) -> dict:
        return as_dict(await self._require(db, row_id))

    async def _require(self, db: AsyncSession, row_id: int):
        row = await db.get(self.model, row_id)
        if row is None:
            raise NotFoundError(f"{self.label.capitalize()} not found with id {row_id}")
        return row

    async def _value_taken(self, db: AsyncSession, field: str, value, exclude_id: Optional[int] = None) -> bool:
        result = await db.execute(select(self.model).where(getattr(self.model, field) == value))
        for row in result.scalars().all():
            # Exact match only, whatever the database collation says
            if getattr(row, field) == value and getattr(row, self.pk) != exclude_id:
                return True
        return False

    async def _check_unique(self, db: AsyncSession, data: dict, row=None):
        for field in (self.name_field, *self.unique_extra):
            if field not in data:
                continue
            if row is not None and data[field] == getattr(row, field):
                continue
            exclude_id = getattr(row, self.pk) if row is not None else None
            if await self._value_taken(db, field, data[field], exclude_id=exclude_id):
                raise ValidationError(f"A {self.label} with this {self._label_for(field)} already exists")

    async def _check_references(self, db: AsyncSession, data: dict):
        errors = []
        for field, (model, label) in self.references.items():
            if field in data and await db.get(model, data[field]) is None:
                errors.append(f"The specified {label} does not exist")
        if errors:
            raise ReferentialIntegrityError("; ".join(errors), errors)

    async def usage(self, db: AsyncSession, row_id: int) -> List[str]:
        """Describe every dependent group still pointing at `row_id`."""
        found = []
        for column, label in self.dependents:
            count = (await db.execute(select(func.count()).where(column == row_id))).scalar_one()
            if count:
                found.append(f"{count} {label}")
        return found

    def _validate_name(self, data: dict):
        name = data.get(self.name_field)
        if name is None or not str(name).strip():
            raise ValidationError(f"{self.label.capitalize()} name cannot be empty")

    async def create(self, db: AsyncSession, fields: dict) -> dict:
        data = {k: v for k, v in fields.items() if k in self.fields}
        missing = [k for k in (self.name_field, *self.required_extra) if data.get(k) is None]
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}", missing)
        self._validate_name(data)
        await self._check_references(db, data)
        await self._check_unique(db, data)

        async with transaction(db, f"create {self.label}"):
            row = self.model(**data)
            db.add(row)
            await db.flush()
            result = as_dict(row)

        logger.info(f"Created {self.label} {result[self.pk]}: {result[self.name_field]}")
        return result

    async def update(self, db: AsyncSession, row_id: int, fields: dict) -> dict:
        row = await self._require(db, row_id)
        data = {k: v for k, v in fields.items() if k in self.fields}
        if not data:
            return as_dict(row)

        if self.name_field in data:
            self._validate_name(data)
        await self._check_unique(db, data, row)
        await self._check_references(db, data)

        changed = [f for f in self.locked_when_used if f in data and data[f] != getattr(row, f)]
        if changed:
            in_use = await self.usage(db, row_id)
            if in_use:
                raise ReferentialIntegrityError(
                    f"Cannot change {', '.join(changed)} of this {self.label} while it is in use by "
                    f"{' and '.join(in_use)}",
                    in_use,
                )

        async with transaction(db, f"update {self.label}"):
            for key, value in data.items():
                setattr(row, key, value)
            await db.flush()
            result = as_dict(row)
        return result

    async def delete(self, db: AsyncSession, row_id: int) -> None:
        row = await self._require(db, row_id)
        in_use = await self.usage(db, row_id)
        if in_use:
            raise ReferentialIntegrityError(
                f"Cannot delete this {self.label} because it is in use by {' and '.join(in_use)}",
                in_use,
            )

        async with transaction(db, f"delete {self.label}"):
            await db.delete(row)
            await db.flush()
        logger.info(f"Deleted {self.label} {row_id}")


# ── Tables ────────────────────────────────────────────────────────────────────
categories = LookupTable(
    DisabilityCategory, "category_id", "category_name", "disability category",
    dependents=[
        (DisabilityType.category_id, "disability types"),
        (PwdRecord.disability_category_id, "PWD records"),
    ],
)

disability_types = LookupTable(
    DisabilityType, "type_id", "type_name", "disability type",
    extra_fields=("category_id",),
    required_extra=("category_id",),
    references={"category_id": (DisabilityCategory, "category")},
    dependents=[(PwdRecord.disability_type_id, "PWD records")],
    locked_when_used=("category_id",),
)

communities = LookupTable(
    Community, "community_id", "community_name", "community",
    dependents=[(PwdRecord.community_id, "PWD records")],
)

assistance_types = LookupTable(
    AssistanceType, "assistance_type_id", "assistance_type_name", "assistance type",
    extra_fields=("description",),
    dependents=[
        (PwdRecord.assistance_type_needed_id, "PWD records"),
        (AssistanceRequest.assistance_type_id, "assistance requests"),
        (Assistance.assistance_type_id, "assistance records"),
    ],
)

genders = LookupTable(
    Gender, "gender_id", "gender_name", "gender",
    dependents=[(PwdRecord.gender_id, "PWD records")],
)

roles = LookupTable(
    Role, "role_id", "role_name", "role",
    dependents=[(User.role_id, "users")],
)

users = LookupTable(
    User, "user_id", "username", "user",
    extra_fields=("email", "role_id"),
    required_extra=("email", "role_id"),
    references={"role_id": (Role, "role")},
    unique_extra=("email",),
    dependents=[
        (PwdRecord.user_id, "PWD records"),
        (AssistanceRequest.requested_by, "assistance requests"),
        (Assistance.admin_id, "assistance records"),
        (ActivityLog.user_id, "activity log entries"),
    ],
)

TABLES = {
    "disability-categories": categories,
    "disability-types": disability_types,
    "communities": communities,
    "assistance-types": assistance_types,
    "genders": genders,
    "roles": roles,
    "users": users,
}
