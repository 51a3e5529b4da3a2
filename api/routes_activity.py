"""
api/routes_activity.py — Activity Log API Endpoints

Endpoints:
    GET    /activity-logs                  → Filter by user, text, date range (paged)
    DELETE /activity-logs/cleanup?days=90  → Remove entries older than `days` (minimum 30)
    GET    /activity-logs/{log_id}         → One entry
"""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from api.deps import ok
from db.session import get_db
from modules import activity_log

router = APIRouter()


@router.get("")
async def list_logs(
    user_id: Optional[int] = None,
    search: Optional[str] = None,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
):
    return ok(await activity_log.list_entries(db, user_id, search, start, end, limit, offset))


@router.delete("/cleanup")
async def cleanup_logs(days: int, db: AsyncSession = Depends(get_db)):
    removed = await activity_log.cleanup_older_than(db, days)
    return ok({"deleted": removed}, f"Deleted {removed} log entries older than {days} days")


@router.get("/{log_id}")
async def get_log(log_id: int, db: AsyncSession = Depends(get_db)):
    return ok(await activity_log.get_entry(db, log_id))
