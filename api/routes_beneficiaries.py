"""
api/routes_beneficiaries.py — PWD Record API Endpoints
=======================================================
Endpoints:
    GET    /beneficiaries                       → List / search PWD records (paged)
    GET    /beneficiaries/count                 → Count matching PWD records
    POST   /beneficiaries                       → Create a record with its children
    GET    /beneficiaries/{pwd_id}              → Full aggregate
    PUT    /beneficiaries/{pwd_id}              → Partial update, children included
    DELETE /beneficiaries/{pwd_id}              → Delete record, children and documents
    PATCH  /beneficiaries/{pwd_id}/status       → Change status

    GET    /beneficiaries/{pwd_id}/{collection}            → guardians | education | support_needs
    POST   /beneficiaries/{pwd_id}/{collection}
    PUT    /beneficiaries/{pwd_id}/{collection}/{row_id}
    DELETE /beneficiaries/{pwd_id}/{collection}/{row_id}
"""

from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from api.deps import get_actor_id, ok
from core.errors import NotFoundError
from core.schemas import BeneficiaryPayload, StatusChange
from db.session import get_db
from modules import beneficiaries, children

router = APIRouter()


def _store(collection: str) -> children.ChildStore:
    store = children.STORES.get(collection)
    if store is None:
        raise NotFoundError(f"Unknown collection '{collection}'")
    return store


@router.get("")
async def list_beneficiaries(
    status: Optional[str] = None,
    quarter: Optional[str] = None,
    year: Optional[int] = None,
    community_id: Optional[int] = None,
    disability_category_id: Optional[int] = None,
    gender_id: Optional[int] = None,
    search: Optional[str] = None,
    limit: Optional[int] = None,
    offset: int = 0,
    db: AsyncSession = Depends(get_db),
):
    page = await beneficiaries.list_beneficiaries(
        db, limit=limit, offset=offset,
        status=status, quarter=quarter, year=year, community_id=community_id,
        disability_category_id=disability_category_id, gender_id=gender_id, search=search,
    )
    return ok(page)


@router.get("/count")
async def count_beneficiaries(
    status: Optional[str] = None,
    quarter: Optional[str] = None,
    year: Optional[int] = None,
    community_id: Optional[int] = None,
    db: AsyncSession = Depends(get_db),
):
    total = await beneficiaries.count_beneficiaries(
        db, status=status, quarter=quarter, year=year, community_id=community_id,
    )
    return ok({"total": total})


@router.post("", status_code=201)
async def create_beneficiary(
    body: BeneficiaryPayload,
    db: AsyncSession = Depends(get_db),
    actor_id: Optional[int] = Depends(get_actor_id),
):
    record = await beneficiaries.create_aggregate(db, body, actor_id)
    return ok(record, "PWD record created successfully")


@router.get("/{pwd_id}")
async def get_beneficiary(pwd_id: int, db: AsyncSession = Depends(get_db)):
    return ok(await beneficiaries.get_aggregate(db, pwd_id))


@router.put("/{pwd_id}")
async def update_beneficiary(
    pwd_id: int,
    body: BeneficiaryPayload,
    db: AsyncSession = Depends(get_db),
    actor_id: Optional[int] = Depends(get_actor_id),
):
    record = await beneficiaries.update_aggregate(db, pwd_id, body, actor_id)
    return ok(record, "PWD record updated successfully")


@router.delete("/{pwd_id}")
async def delete_beneficiary(
    pwd_id: int,
    db: AsyncSession = Depends(get_db),
    actor_id: Optional[int] = Depends(get_actor_id),
):
    await beneficiaries.delete_aggregate(db, pwd_id, actor_id)
    return ok(message="PWD record deleted successfully")


@router.patch("/{pwd_id}/status")
async def change_status(
    pwd_id: int,
    body: StatusChange,
    db: AsyncSession = Depends(get_db),
    actor_id: Optional[int] = Depends(get_actor_id),
):
    record = await beneficiaries.set_beneficiary_status(db, pwd_id, body.status, actor_id)
    return ok(record, f"PWD status updated to {body.status}")


# ── Child collections ─────────────────────────────────────────────────────────
@router.get("/{pwd_id}/{collection}")
async def list_children(pwd_id: int, collection: str, db: AsyncSession = Depends(get_db)):
    return ok(await children.list_children(db, _store(collection), pwd_id))


@router.post("/{pwd_id}/{collection}", status_code=201)
async def add_child(
    pwd_id: int,
    collection: str,
    body: Dict[str, Any] = Body(...),
    db: AsyncSession = Depends(get_db),
    actor_id: Optional[int] = Depends(get_actor_id),
):
    store = _store(collection)
    row = await children.create_child(db, store, pwd_id, body, actor_id)
    return ok(row, f"{store.label.capitalize()} added")


@router.put("/{pwd_id}/{collection}/{row_id}")
async def update_child(
    pwd_id: int,
    collection: str,
    row_id: int,
    body: Dict[str, Any] = Body(...),
    db: AsyncSession = Depends(get_db),
    actor_id: Optional[int] = Depends(get_actor_id),
):
    store = _store(collection)
    row = await children.update_child(db, store, pwd_id, row_id, body, actor_id)
    return ok(row, f"{store.label.capitalize()} updated")


@router.delete("/{pwd_id}/{collection}/{row_id}")
async def delete_child(
    pwd_id: int,
    collection: str,
    row_id: int,
    db: AsyncSession = Depends(get_db),
    actor_id: Optional[int] = Depends(get_actor_id),
):
    store = _store(collection)
    await children.delete_child(db, store, pwd_id, row_id, actor_id)
    return ok(message=f"{store.label.capitalize()} deleted")
