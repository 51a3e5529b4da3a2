"""
modules/documents.py — Supporting Documents
============================================
Documents belong to a PWD record or an assistance request (DocumentOwner).
The row records where core/storage.py put the bytes; the original client
file name is kept only as metadata.

Flow (upload):
    check owner exists → storage.save() → insert row → commit → activity log
If the insert fails, the stored file is removed again.
"""

import logging
from typing import List, Optional

from sqlalchemy import delete as sql_delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from core.documents import DocumentOwner, OwnerKind
from core.errors import NotFoundError, RegistryError, ValidationError
from core.storage import storage
from db.models import AssistanceRequest, PwdRecord, SupportingDocument, as_dict
from db.session import transaction
from modules import activity_log

logger = logging.getLogger("pwdregistry.documents")

EDITABLE_FIELDS = {"document_type", "original_name", "mime_type"}


# ── Store (caller's transaction) ──────────────────────────────────────────────
async def ensure_owner_exists(db: AsyncSession, owner: DocumentOwner):
    model = PwdRecord if owner.kind is OwnerKind.BENEFICIARY else AssistanceRequest
    if await db.get(model, owner.id) is None:
        raise NotFoundError(f"Owner {owner.label} not found")


async def list_by_owner(db: AsyncSession, owner: DocumentOwner) -> List[SupportingDocument]:
    result = await db.execute(
        select(SupportingDocument)
        .where(
            SupportingDocument.related_type == owner.kind.value,
            SupportingDocument.related_id == owner.id,
        )
        .order_by(SupportingDocument.uploaded_at.desc(), SupportingDocument.document_id.desc())
    )
    return list(result.scalars().all())


async def get_by_id(db: AsyncSession, document_id: int) -> Optional[SupportingDocument]:
    return await db.get(SupportingDocument, document_id)


async def create(
    db: AsyncSession,
    owner: DocumentOwner,
    file_name: str,
    document_type: Optional[str] = None,
    mime_type: Optional[str] = None,
    file_size: Optional[int] = None,
    uploaded_by: Optional[int] = None,
    original_name: Optional[str] = None,
) -> SupportingDocument:
    if not file_name:
        raise ValidationError("Missing required fields: file_name")

    row = SupportingDocument(
        related_type=owner.kind.value,
        related_id=owner.id,
        file_name=file_name,
        original_name=original_name,
        document_type=document_type,
        mime_type=mime_type,
        file_size=file_size,
        uploaded_by=uploaded_by,
    )
    db.add(row)
    await db.flush()
    return row


async def update(db: AsyncSession, document_id: int, fields: dict) -> SupportingDocument:
    row = await get_by_id(db, document_id)
    if row is None:
        raise NotFoundError(f"Document not found with ID: {document_id}")
    for key, value in fields.items():
        if key in EDITABLE_FIELDS:
            setattr(row, key, value)
    await db.flush()
    return row


async def delete(db: AsyncSession, document_id: int) -> SupportingDocument:
    row = await get_by_id(db, document_id)
    if row is None:
        raise NotFoundError(f"Document not found with ID: {document_id}")
    await db.delete(row)
    await db.flush()
    return row


async def delete_all_by_owner(db: AsyncSession, owner: DocumentOwner) -> List[str]:
    """Remove every document row of `owner`; returns their stored paths."""
    paths = [doc.file_name for doc in await list_by_owner(db, owner)]
    await db.execute(
        sql_delete(SupportingDocument).where(
            SupportingDocument.related_type == owner.kind.value,
            SupportingDocument.related_id == owner.id,
        )
    )
    return paths


async def discard_files(paths: List[str]):
    """Best-effort removal of stored files whose rows are already gone."""
    for path in paths:
        try:
            await storage.delete(path)
        except OSError:
            logger.exception(f"Could not remove stored file {path}")


# ── Write paths ───────────────────────────────────────────────────────────────
async def attach_document(
    db: AsyncSession,
    owner: DocumentOwner,
    file_name: str,
    document_type: Optional[str] = None,
    mime_type: Optional[str] = None,
    file_size: Optional[int] = None,
    actor_id: Optional[int] = None,
    original_name: Optional[str] = None,
) -> dict:
    """Record an already-stored file against its owner."""
    async with transaction(db, "attach document"):
        await ensure_owner_exists(db, owner)
        row = await create(
            db, owner, file_name,
            document_type=document_type, mime_type=mime_type, file_size=file_size,
            uploaded_by=actor_id, original_name=original_name,
        )
        data = as_dict(row)

    await activity_log.record(db, actor_id, f"Attached document {original_name or file_name} to {owner.label}")
    return data


async def upload_document(
    db: AsyncSession,
    owner: DocumentOwner,
    raw: bytes,
    filename: str,
    document_type: str,
    mime_type: Optional[str] = None,
    actor_id: Optional[int] = None,
) -> dict:
    if not document_type:
        raise ValidationError("Missing required fields: document_type")
    await ensure_owner_exists(db, owner)

    stored_path = await storage.save(raw, filename)
    try:
        return await attach_document(
            db, owner, stored_path,
            document_type=document_type, mime_type=mime_type, file_size=len(raw),
            actor_id=actor_id, original_name=filename,
        )
    except RegistryError:
        await discard_files([stored_path])
        raise


async def update_document(db: AsyncSession, document_id: int, fields: dict, actor_id: Optional[int] = None) -> dict:
    async with transaction(db, "update document"):
        row = await update(db, document_id, fields)
        data = as_dict(row)
    await activity_log.record(db, actor_id, f"Updated document #{document_id}")
    return data


async def remove_document(db: AsyncSession, document_id: int, actor_id: Optional[int] = None) -> None:
    async with transaction(db, "delete document"):
        row = await delete(db, document_id)
        stored_path, owner_label = row.file_name, DocumentOwner.parse(row.related_type, row.related_id).label

    await discard_files([stored_path])
    await activity_log.record(db, actor_id, f"Deleted document #{document_id} of {owner_label}")


async def get_document(db: AsyncSession, document_id: int) -> dict:
    row = await get_by_id(db, document_id)
    if row is None:
        raise NotFoundError(f"Document not found with ID: {document_id}")
    return as_dict(row)


async def list_documents(db: AsyncSession, owner: DocumentOwner) -> List[dict]:
    await ensure_owner_exists(db, owner)
    return [as_dict(doc) for doc in await list_by_owner(db, owner)]
