import enum
import hashlib
from dataclasses import dataclass
from typing import Optional

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from docassist.db.models.document import Document
from docassist.utils.logger import get_logger, log_database_operation

logger = get_logger("services.dedup_service")


class MatchType(str, enum.Enum):
    hash = "hash"
    name = "name"
    both = "both"


@dataclass(frozen=True)
class DuplicateMatch:
    id: str
    title: str
    file_path: str
    match_type: MatchType

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "filePath": self.file_path,
            "matchType": self.match_type.value,
        }


def compute_content_hash(data: bytes) -> str:
    """SHA-256 hex digest of the raw bytes."""
    return hashlib.sha256(data).hexdigest()


def classify_match(document: Document, content_hash: str, file_name: str) -> Optional[MatchType]:
    same_hash = document.content_hash == content_hash
    same_name = document.file_name == file_name
    if same_hash and same_name:
        return MatchType.both
    if same_hash:
        return MatchType.hash
    if same_name:
        return MatchType.name
    return None


async def find_duplicate(db: AsyncSession, content_hash: str, file_name: str) -> Optional[DuplicateMatch]:
    """
    First existing document with the same content hash or the same file name.

    Best-effort only: nothing locks the check-then-insert window, so two
    concurrent uploads of the same bytes can both pass.
    """
    log_database_operation(logger, "SELECT", "documents", content_hash[:12])
    result = await db.execute(
        select(Document)
        .where(or_(Document.content_hash == content_hash, Document.file_name == file_name))
        .order_by(Document.created_at)
        .limit(1)
    )
    document = result.scalars().first()
    if document is None:
        return None

    match_type = classify_match(document, content_hash, file_name)
    logger.info(f"Duplicate of '{file_name}' found: document {document.id} ({match_type.value})")
    return DuplicateMatch(
        id=document.id,
        title=document.title,
        file_path=document.file_path,
        match_type=match_type,
    )
