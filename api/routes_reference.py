"""
api/routes_reference.py — Reference Data API Endpoints
=======================================================
One set of endpoints per lookup table:
    disability-categories | disability-types | communities |
    assistance-types | genders | roles | users

    GET    /reference/{table}              → List (disability-types: ?category_id=)
    POST   /reference/{table}              → Create
    GET    /reference/{table}/{row_id}
    PUT    /reference/{table}/{row_id}
    DELETE /reference/{table}/{row_id}     → Refused while the row is in use
"""

from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from api.deps import ok
from core.errors import NotFoundError
from db.session import get_db
from modules.reference import TABLES, LookupTable

router = APIRouter()


def _table(name: str) -> LookupTable:
    table = TABLES.get(name)
    if table is None:
        raise NotFoundError(f"Unknown reference table '{name}'")
    return table


@router.get("/{table}")
async def list_rows(table: str, category_id: Optional[int] = None, db: AsyncSession = Depends(get_db)):
    lookup = _table(table)
    filters = {"category_id": category_id} if "category_id" in lookup.fields else {}
    return ok(await lookup.list(db, **filters))


@router.post("/{table}", status_code=201)
async def create_row(table: str, body: Dict[str, Any] = Body(...), db: AsyncSession = Depends(get_db)):
    lookup = _table(table)
    return ok(await lookup.create(db, body), f"{lookup.label.capitalize()} created successfully")


@router.get("/{table}/{row_id}")
async def get_row(table: str, row_id: int, db: AsyncSession = Depends(get_db)):
    return ok(await _table(table).get(db, row_id))


@router.put("/{table}/{row_id}")
async def update_row(
    table: str, row_id: int, body: Dict[str, Any] = Body(...), db: AsyncSession = Depends(get_db),
):
    lookup = _table(table)
    return ok(await lookup.update(db, row_id, body), f"{lookup.label.capitalize()} updated successfully")


@router.delete("/{table}/{row_id}")
async def delete_row(table: str, row_id: int, db: AsyncSession = Depends(get_db)):
    lookup = _table(table)
    await lookup.delete(db, row_id)
    return ok(message=f"{lookup.label.capitalize()} deleted successfully")
