"""
modules/activity_log.py — Activity Log Sink
============================================
Append-only audit trail of who did what. Entries are written after the
data transaction they describe has committed, in their own small commit.

record() is best-effort: if the audit write fails the error is logged and
swallowed, and the caller's already-committed work stands.
"""

import logging
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import delete, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from config import settings
from core.errors import NotFoundError, ValidationError
from db.models import ActivityLog, User

logger = logging.getLogger("pwdregistry.activity")


async def record(db: AsyncSession, user_id: Optional[int], text: str) -> Optional[int]:
    """Append one entry. Returns its log_id, or None when nothing was written."""
    if not user_id:
        return None

    entry = ActivityLog(user_id=user_id, activity=text)
    try:
        db.add(entry)
        await db.commit()
    except SQLAlchemyError:
        await db.rollback()
        logger.exception(f"Activity log write failed for user {user_id}: {text}")
        return None
    return entry.log_id


def _serialize(log: ActivityLog, username: Optional[str]) -> dict:
    return {
        "log_id": log.log_id,
        "user_id": log.user_id,
        "username": username,
        "activity": log.activity,
        "timestamp": log.timestamp.isoformat(),
    }


async def get_entry(db: AsyncSession, log_id: int) -> dict:
    row = (await db.execute(
        select(ActivityLog, User.username)
        .outerjoin(User, User.user_id == ActivityLog.user_id)
        .where(ActivityLog.log_id == log_id)
    )).first()
    if row is None:
        raise NotFoundError(f"Activity log entry not found with ID: {log_id}")
    return _serialize(*row)


async def list_entries(
    db: AsyncSession,
    user_id: Optional[int] = None,
    search: Optional[str] = None,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    limit: int = 100,
    offset: int = 0,
) -> dict:
    """Newest first, with the acting user's name joined in."""
    conditions = []
    if user_id is not None:
        conditions.append(ActivityLog.user_id == user_id)
    if search:
        conditions.append(ActivityLog.activity.like(f"%{search}%"))
    if start is not None:
        conditions.append(ActivityLog.timestamp >= start)
    if end is not None:
        conditions.append(ActivityLog.timestamp <= end)

    query = (
        select(ActivityLog, User.username)
        .outerjoin(User, User.user_id == ActivityLog.user_id)
        .where(*conditions)
        .order_by(ActivityLog.timestamp.desc(), ActivityLog.log_id.desc())
        .limit(limit)
        .offset(offset)
    )
    rows = (await db.execute(query)).all()
    total = (await db.execute(select(func.count(ActivityLog.log_id)).where(*conditions))).scalar_one()

    return {
        "logs": [_serialize(log, username) for log, username in rows],
        "total": total,
        "limit": limit,
        "offset": offset,
    }


async def cleanup_older_than(db: AsyncSession, days: int) -> int:
    """
    Delete entries older than `days`. Anything younger than the retention
    floor (LOG_RETENTION_MIN_DAYS) is never eligible.
    """
    floor = settings.LOG_RETENTION_MIN_DAYS
    if days < floor:
        raise ValidationError(f"Cannot delete logs less than {floor} days old for audit purposes")

    cutoff = datetime.utcnow() - timedelta(days=days)
    result = await db.execute(delete(ActivityLog).where(ActivityLog.timestamp < cutoff))
    await db.commit()

    logger.info(f"Removed {result.rowcount} activity log entries older than {days} days")
    return result.rowcount
