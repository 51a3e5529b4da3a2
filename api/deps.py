"""
api/deps.py — Shared route helpers
"""

from typing import Any, Optional

from fastapi import Header


async def get_actor_id(x_user_id: Optional[int] = Header(default=None, alias="X-User-Id")) -> Optional[int]:
    """Id of the acting user, used for the activity log. Absent means nothing is logged."""
    return x_user_id


def ok(data: Any = None, message: str = "OK") -> dict:
    return {"status": "success", "message": message, "data": data}
