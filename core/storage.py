"""
core/storage.py — File Storage Backend
=======================================
Abstraction layer over 2 storage backends:
  1. "local"  : files under UPLOAD_DIR on disk (default)
  2. "memory" : in-process dict, no disk access (tests, throwaway runs)

Set STORAGE_BACKEND in .env to switch.
The registry only records the opaque path a backend hands back; it never
builds paths itself. All modules call: from core.storage import storage
"""

import logging
import os
import uuid
from pathlib import Path
from typing import Dict, Optional

from config import settings
from core.errors import NotFoundError, ValidationError

logger = logging.getLogger("pwdregistry.storage")


def _stored_name(original_filename: str) -> str:
    """Random name that keeps the client's extension, never the client's name."""
    extension = Path(original_filename).suffix.lower().lstrip(".")
    if extension not in settings.ALLOWED_UPLOAD_EXTENSIONS:
        allowed = ", ".join(settings.ALLOWED_UPLOAD_EXTENSIONS)
        raise ValidationError(f"File type '.{extension}' is not allowed. Allowed: {allowed}")
    return f"{uuid.uuid4().hex}.{extension}"


def _check_size(raw: bytes):
    if not raw:
        raise ValidationError("Uploaded file is empty")
    if len(raw) > settings.MAX_UPLOAD_BYTES:
        raise ValidationError(
            f"Uploaded file is {len(raw)} bytes, larger than the {settings.MAX_UPLOAD_BYTES} byte limit"
        )


# ── Local disk (default) ──────────────────────────────────────────────────────
class LocalStorage:
    """Writes uploads into UPLOAD_DIR, one flat directory, random file names."""

    def __init__(self, root: Optional[str] = None):
        self.root = Path(root or settings.UPLOAD_DIR)

    async def connect(self):
        self.root.mkdir(parents=True, exist_ok=True)
        logger.info(f"LocalStorage: ready at {self.root.resolve()}")

    async def save(self, raw: bytes, original_filename: str) -> str:
        _check_size(raw)
        name = _stored_name(original_filename)
        self.root.mkdir(parents=True, exist_ok=True)
        (self.root / name).write_bytes(raw)
        logger.info(f"Stored {len(raw)} bytes as {name}")
        return name

    async def read(self, stored_path: str) -> bytes:
        target = self.root / os.path.basename(stored_path)
        if not target.exists():
            raise NotFoundError(f"Stored file {stored_path} not found")
        return target.read_bytes()

    async def delete(self, stored_path: str) -> bool:
        target = self.root / os.path.basename(stored_path)
        if not target.exists():
            return False
        target.unlink()
        return True


# ── In-memory ─────────────────────────────────────────────────────────────────
class MemoryStorage:
    """Keeps uploads in a dict. Data resets when the process restarts."""

    def __init__(self):
        self.files: Dict[str, bytes] = {}

    async def connect(self):
        logger.info("MemoryStorage: ready (in-memory mode)")

    async def save(self, raw: bytes, original_filename: str) -> str:
        _check_size(raw)
        name = _stored_name(original_filename)
        self.files[name] = raw
        return name

    async def read(self, stored_path: str) -> bytes:
        if stored_path not in self.files:
            raise NotFoundError(f"Stored file {stored_path} not found")
        return self.files[stored_path]

    async def delete(self, stored_path: str) -> bool:
        return self.files.pop(stored_path, None) is not None


# ── Factory: picks the backend from .env ────────────────────────────────────────────────────────────────────
def _create_storage():
    backend = settings.STORAGE_BACKEND.lower()
    if backend == "memory":
        logger.info("Using in-memory file storage")
        return MemoryStorage()
    logger.info(f"Using local file storage ({settings.UPLOAD_DIR})")
    return LocalStorage()


# Singleton, import this everywhere:  from core.storage import storage
storage = _create_storage()
