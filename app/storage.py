# app/storage.py
"""File store for uploaded payment proofs.

Files are written under UPLOAD_DIR with a random name and served from
UPLOAD_PUBLIC_URL; swapping in an object store only needs another object
with the same ``upload`` method.
"""
import os
import uuid
from pathlib import Path
from typing import Optional
from dotenv import load_dotenv
from .errors import StorageError
from .utils import logger, retry

load_dotenv()
UPLOAD_DIR = os.getenv("UPLOAD_DIR", "uploads")
UPLOAD_PUBLIC_URL = os.getenv("UPLOAD_PUBLIC_URL", "/uploads")

class LocalFileStorage:
    def __init__(self, root: str = UPLOAD_DIR, public_url: str = UPLOAD_PUBLIC_URL):
        self.root = Path(root)
        self.public_url = public_url.rstrip("/")

    @retry(OSError, tries=3, delay=0.2)
    def _write(self, path: Path, content: bytes):
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(content)

    def upload(self, filename: Optional[str], content: bytes, folder: str = "payments") -> str:
        ext = Path(filename or "").suffix.lower()
        rel = f"{folder}/{uuid.uuid4()}{ext}"
        try:
            self._write(self.root / rel, content)
        except OSError as e:
            logger.error("File upload failed: %s", e)
            raise StorageError(str(e)) from e
        public_url = f"{self.public_url}/{rel}"
        logger.info("File uploaded successfully: %s", public_url)
        return public_url

_storage = LocalFileStorage()

def get_storage():
    return _storage
