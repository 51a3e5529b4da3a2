"""
core/workflow.py — Status Workflow Engine
==========================================
The legal status values for each entity with a lifecycle, and the single
code path that changes them.

    PWD record          pending | approved | declined
    Assistance request  pending | review | ready_to_access | assessed | declined
    Assistance record   pending | approved | disapproved   (legacy distribution table)

Any listed state may move to any other listed state. Only membership is
enforced. The two assistance vocabularies stay separate on purpose: they
belong to different tables with different consumers.
"""

import logging
from typing import Optional, Tuple, Type

from sqlalchemy.ext.asyncio import AsyncSession

from core.errors import NotFoundError, ValidationError

logger = logging.getLogger("pwdregistry.workflow")


class StatusMachine:
    """A named set of legal states with a default for new rows."""

    def __init__(self, entity: str, states: Tuple[str, ...], default: str = "pending"):
        self.entity = entity
        self.states = states
        self.default = default

    def __contains__(self, value) -> bool:
        return value in self.states

    def validate(self, value) -> str:
        """Return `value` if it is a legal state (exact, case-sensitive), else raise."""
        if value not in self.states:
            raise ValidationError(
                f"Invalid status '{value}' for {self.entity}. Must be one of: {', '.join(self.states)}"
            )
        return value


BENEFICIARY_STATUS = StatusMachine("PWD record", ("pending", "approved", "declined"))
REQUEST_STATUS = StatusMachine(
    "Assistance request", ("pending", "review", "ready_to_access", "assessed", "declined")
)
ASSISTANCE_STATUS = StatusMachine("Assistance record", ("pending", "approved", "disapproved"))


async def apply_status(
    db: AsyncSession,
    model: Type,
    entity_id: int,
    machine: StatusMachine,
    new_state: str,
    notes: Optional[str] = None,
    notes_field: Optional[str] = None,
):
    """
    Move one row to `new_state` inside the caller's transaction.

    Raises NotFoundError before looking at the state, so an unknown id is
    reported as such even when the state is also bad. Notes are written in
    the same flush when the entity has a notes column and notes were given.

    Returns (row, previous_state).
    """
    row = await db.get(model, entity_id)
    if row is None:
        raise NotFoundError(f"{machine.entity} not found with ID: {entity_id}")

    state = machine.validate(new_state)
    previous = row.status
    row.status = state
    if notes is not None and notes_field:
        setattr(row, notes_field, notes)
    await db.flush()

    logger.info(f"{machine.entity} {entity_id}: {previous} → {state}")
    return row, previous
