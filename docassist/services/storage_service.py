import os
import time
from pathlib import Path

import aiofiles
import aiofiles.os

from docassist.core.config import settings
from docassist.core.errors import NotFoundError, ValidationError


class StorageService:
    """Blob storage on local disk. Keys are ``<user_id>/<epoch_ms>_<file_name>``."""

    def __init__(self, upload_dir: Path = Path(settings.UPLOAD_DIR)):
        self.upload_dir = Path(upload_dir)
        self.upload_dir.mkdir(parents=True, exist_ok=True)

    @staticmethod
    def build_key(user_id: str, file_name: str) -> str:
        safe_name = os.path.basename(file_name.replace("\\", "/")) or "upload"
        return f"{user_id}/{int(time.time() * 1000)}_{safe_name}"

    def _resolve(self, key: str) -> Path:
        path = (self.upload_dir / key).resolve()
        if self.upload_dir.resolve() not in path.parents:
            raise ValidationError(f"Invalid storage key: {key}")
        return path

    async def save_bytes(self, key: str, data: bytes) -> str:
        """Write a blob and return its key."""
        path = self._resolve(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        async with aiofiles.open(path, "wb") as f:
            await f.write(data)
        return key

    async def read_bytes(self, key: str) -> bytes:
        path = self._resolve(key)
        if not path.exists():
            raise NotFoundError(f"Stored file not found: {key}")
        async with aiofiles.open(path, "rb") as f:
            return await f.read()

    async def delete(self, key: str) -> bool:
        """Delete a stored blob. Missing blobs are not an error."""
        path = self._resolve(key)
        if path.exists():
            await aiofiles.os.remove(path)
            return True
        return False


def get_storage() -> StorageService:
    return StorageService()
