"""
api/routes_assistance.py — Assistance API Endpoints
====================================================
Endpoints:
    GET    /assistance/requests                   → List requests (filter by status, beneficiary, requester)
    POST   /assistance/requests                   → Raise a request
    GET    /assistance/requests/{request_id}      → One request with its documents
    PUT    /assistance/requests/{request_id}      → Partial update
    DELETE /assistance/requests/{request_id}      → Delete request and its documents
    PATCH  /assistance/requests/{request_id}/status → Review: change status, optional notes

    GET    /assistance/records                    → Assistance handed out
    POST   /assistance/records
    GET    /assistance/records/{assistance_id}
    PUT    /assistance/records/{assistance_id}      → Partial update
    DELETE /assistance/records/{assistance_id}
    PATCH  /assistance/records/{assistance_id}/status
"""

from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from api.deps import get_actor_id, ok
from core.schemas import AssistancePayload, AssistanceRequestPayload, StatusChange
from db.session import get_db
from modules import assistance, assistance_requests

router = APIRouter()


# ── Requests ──────────────────────────────────────────────────────────────────
@router.get("/requests")
async def list_requests(
    status: Optional[str] = None,
    beneficiary_id: Optional[int] = None,
    requested_by: Optional[int] = None,
    limit: Optional[int] = None,
    offset: int = 0,
    db: AsyncSession = Depends(get_db),
):
    page = await assistance_requests.list_requests(
        db, status=status, beneficiary_id=beneficiary_id, requested_by=requested_by,
        limit=limit, offset=offset,
    )
    return ok(page)


@router.post("/requests", status_code=201)
async def create_request(
    body: AssistanceRequestPayload,
    db: AsyncSession = Depends(get_db),
    actor_id: Optional[int] = Depends(get_actor_id),
):
    request = await assistance_requests.create_request(db, body, actor_id)
    return ok(request, "Assistance request created successfully")


@router.get("/requests/{request_id}")
async def get_request(request_id: int, db: AsyncSession = Depends(get_db)):
    return ok(await assistance_requests.get_request(db, request_id))


@router.put("/requests/{request_id}")
async def update_request(
    request_id: int,
    body: AssistanceRequestPayload,
    db: AsyncSession = Depends(get_db),
    actor_id: Optional[int] = Depends(get_actor_id),
):
    request = await assistance_requests.update_request(db, request_id, body, actor_id)
    return ok(request, "Assistance request updated successfully")


@router.delete("/requests/{request_id}")
async def delete_request(
    request_id: int,
    db: AsyncSession = Depends(get_db),
    actor_id: Optional[int] = Depends(get_actor_id),
):
    await assistance_requests.delete_request(db, request_id, actor_id)
    return ok(message="Assistance request deleted successfully")


@router.patch("/requests/{request_id}/status")
async def review_request(
    request_id: int,
    body: StatusChange,
    db: AsyncSession = Depends(get_db),
    actor_id: Optional[int] = Depends(get_actor_id),
):
    request = await assistance_requests.set_request_status(db, request_id, body.status, body.notes, actor_id)
    return ok(request, f"Assistance request status updated to {body.status}")


# ── Distribution records ──────────────────────────────────────────────────────
@router.get("/records")
async def list_records(
    status: Optional[str] = None,
    beneficiary_id: Optional[int] = None,
    db: AsyncSession = Depends(get_db),
):
    return ok(await assistance.list_assistance(db, status=status, beneficiary_id=beneficiary_id))


@router.post("/records", status_code=201)
async def create_record(
    body: AssistancePayload,
    db: AsyncSession = Depends(get_db),
    actor_id: Optional[int] = Depends(get_actor_id),
):
    return ok(await assistance.create_assistance(db, body, actor_id), "Assistance record created successfully")


@router.get("/records/{assistance_id}")
async def get_record(assistance_id: int, db: AsyncSession = Depends(get_db)):
    return ok(await assistance.get_assistance(db, assistance_id))


@router.put("/records/{assistance_id}")
async def update_record(
    assistance_id: int,
    body: AssistancePayload,
    db: AsyncSession = Depends(get_db),
    actor_id: Optional[int] = Depends(get_actor_id),
):
    record = await assistance.update_assistance(db, assistance_id, body, actor_id)
    return ok(record, "Assistance record updated successfully")


@router.delete("/records/{assistance_id}")
async def delete_record(
    assistance_id: int,
    db: AsyncSession = Depends(get_db),
    actor_id: Optional[int] = Depends(get_actor_id),
):
    await assistance.delete_assistance(db, assistance_id, actor_id)
    return ok(message="Assistance record deleted successfully")


@router.patch("/records/{assistance_id}/status")
async def change_record_status(
    assistance_id: int,
    body: StatusChange,
    db: AsyncSession = Depends(get_db),
    actor_id: Optional[int] = Depends(get_actor_id),
):
    record = await assistance.set_assistance_status(db, assistance_id, body.status, body.notes, actor_id)
    return ok(record, f"Assistance record status updated to {body.status}")
