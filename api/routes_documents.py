"""
api/routes_documents.py — Supporting Document API Endpoints
============================================================
Owners are named by (related_type, related_id): "pwd" for a PWD record,
"assistance" for an assistance request.

Endpoints:
    POST   /documents/upload                → Multipart upload, stored and attached
    POST   /documents                       → Attach an already-stored file
    GET    /documents?related_type=&related_id= → Documents of one owner
    GET    /documents/{document_id}         → Metadata
    GET    /documents/{document_id}/file    → The stored bytes
    PUT    /documents/{document_id}         → Edit metadata
    DELETE /documents/{document_id}         → Remove row and stored file
"""

import mimetypes
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Response, UploadFile
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from api.deps import get_actor_id, ok
from core.documents import DocumentOwner
from core.storage import storage
from db.session import get_db
from modules import documents

router = APIRouter()


class AttachRequest(BaseModel):
    related_type: str           # pwd | assistance
    related_id: int
    file_name: str              # path returned by the storage backend
    document_type: Optional[str] = None
    original_name: Optional[str] = None
    mime_type: Optional[str] = None
    file_size: Optional[int] = None


class DocumentUpdate(BaseModel):
    document_type: Optional[str] = None
    original_name: Optional[str] = None
    mime_type: Optional[str] = None


@router.post("/upload", status_code=201)
async def upload_document(
    related_type: str = Form(...),
    related_id: int = Form(...),
    document_type: str = Form(...),
    file: UploadFile = File(...),
    db: AsyncSession = Depends(get_db),
    actor_id: Optional[int] = Depends(get_actor_id),
):
    owner = DocumentOwner.parse(related_type, related_id)
    raw = await file.read()
    document = await documents.upload_document(
        db, owner, raw, file.filename or "",
        document_type=document_type, mime_type=file.content_type, actor_id=actor_id,
    )
    return ok(document, "Document uploaded successfully")


@router.post("", status_code=201)
async def attach_document(
    body: AttachRequest,
    db: AsyncSession = Depends(get_db),
    actor_id: Optional[int] = Depends(get_actor_id),
):
    owner = DocumentOwner.parse(body.related_type, body.related_id)
    document = await documents.attach_document(
        db, owner, body.file_name,
        document_type=body.document_type, mime_type=body.mime_type, file_size=body.file_size,
        actor_id=actor_id, original_name=body.original_name,
    )
    return ok(document, "Document attached successfully")


@router.get("")
async def list_documents(related_type: str, related_id: int, db: AsyncSession = Depends(get_db)):
    owner = DocumentOwner.parse(related_type, related_id)
    return ok(await documents.list_documents(db, owner))


@router.get("/{document_id}")
async def get_document(document_id: int, db: AsyncSession = Depends(get_db)):
    return ok(await documents.get_document(db, document_id))


@router.get("/{document_id}/file")
async def download_document(document_id: int, db: AsyncSession = Depends(get_db)):
    document = await documents.get_document(db, document_id)
    raw = await storage.read(document["file_name"])
    media_type = document["mime_type"] or mimetypes.guess_type(document["file_name"])[0] or "application/octet-stream"
    filename = document["original_name"] or document["file_name"]
    return Response(
        content=raw,
        media_type=media_type,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.put("/{document_id}")
async def update_document(
    document_id: int,
    body: DocumentUpdate,
    db: AsyncSession = Depends(get_db),
    actor_id: Optional[int] = Depends(get_actor_id),
):
    document = await documents.update_document(db, document_id, body.model_dump(exclude_unset=True), actor_id)
    return ok(document, "Document updated successfully")


@router.delete("/{document_id}")
async def delete_document(
    document_id: int,
    db: AsyncSession = Depends(get_db),
    actor_id: Optional[int] = Depends(get_actor_id),
):
    await documents.remove_document(db, document_id, actor_id)
    return ok(message="Document deleted successfully")
