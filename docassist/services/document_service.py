import asyncio
import time
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from docassist.core.auth import CurrentUser
from docassist.core.config import Settings, settings
from docassist.core.errors import ConflictError, ForbiddenError, NotFoundError, ValidationError
from docassist.core.rbac import DocumentCategory
from docassist.db.models.document import Document
from docassist.services.chunking_service import ChunkingService
from docassist.services.dedup_service import compute_content_hash, find_duplicate
from docassist.services.embedding_service import Embedder
from docassist.services.storage_service import StorageService
from docassist.utils.chunking import FixedSizeChunking
from docassist.utils.logger import get_logger, log_database_operation, log_embedding_operation
from docassist.utils.metrics import (
    chunks_created_total,
    documents_ingested_total,
    duplicate_uploads_total,
    ingestion_duration,
)
from docassist.utils.read_file import ALLOWED_MIME_TYPES, extract_text

logger = get_logger("services.document_service")


@dataclass
class UploadResult:
    document: Document
    chunk_count: int
    replaced_document_id: Optional[str] = None


def ensure_can_modify(user: CurrentUser, document: Document) -> None:
    if not (user.is_admin or document.uploaded_by == user.id):
        raise ForbiddenError("Only the uploader or an admin can modify this document")


class DocumentService:
    """Upload, ingestion and removal of documents."""

    def __init__(self, db: AsyncSession, storage: StorageService,
                 embedder: Optional[Embedder] = None, config: Settings = settings):
        self.db = db
        self.storage = storage
        self.embedder = embedder
        self.config = config
        self.chunking = ChunkingService(db)

    async def get_document(self, document_id: str) -> Document:
        document = await self.db.get(Document, document_id)
        if document is None:
            raise NotFoundError("Document not found")
        return document

    async def list_documents(self, user: CurrentUser) -> List[Document]:
        result = await self.db.execute(
            select(Document)
            .where(Document.category.in_(list(user.categories)))
            .order_by(Document.created_at.desc())
        )
        return list(result.scalars().all())

    def _validate_upload(self, file_name: str, mime_type: str, data: bytes) -> None:
        if not file_name:
            raise ValidationError("File name is required")
        if mime_type not in ALLOWED_MIME_TYPES:
            raise ValidationError("Unsupported file type. Please upload PDF, DOCX, TXT, or CSV.")
        if not data:
            raise ValidationError("File is empty")
        if len(data) > self.config.MAX_UPLOAD_BYTES:
            raise ValidationError(f"File exceeds the {self.config.MAX_UPLOAD_BYTES} byte limit")

    async def upload(self, user: CurrentUser, file_name: str, mime_type: str, data: bytes,
                     category: DocumentCategory, title: Optional[str] = None,
                     replace: bool = False) -> UploadResult:
        """
        Store, record and ingest an uploaded file.

        A duplicate (same bytes or same file name) is a conflict for regular
        users. Admins may pass ``replace`` to remove the existing document first.
        """
        self._validate_upload(file_name, mime_type, data)
        content_hash = compute_content_hash(data)

        replaced_id = None
        match = await find_duplicate(self.db, content_hash, file_name)
        if match is not None:
            if not user.is_admin:
                duplicate_uploads_total.labels(match_type=match.match_type.value, action="rejected").inc()
                raise ConflictError("A matching document already exists", extra={"duplicate": match.to_dict()})
            if not replace:
                duplicate_uploads_total.labels(match_type=match.match_type.value, action="replace_offered").inc()
                raise ConflictError(
                    "A matching document already exists",
                    extra={"duplicate": match.to_dict(), "replaceable": True},
                )
            duplicate_uploads_total.labels(match_type=match.match_type.value, action="replaced").inc()
            await self.remove_document(await self.get_document(match.id))
            replaced_id = match.id
            logger.info(f"Replaced document {match.id} on upload of '{file_name}'")

        file_path = self.storage.build_key(user.id, file_name)
        await self.storage.save_bytes(file_path, data)
        logger.info(f"File saved to: {file_path}")

        document = Document(
            id=str(uuid.uuid4()),
            title=(title or "").strip() or file_name,
            file_name=file_name,
            file_path=file_path,
            mime_type=mime_type,
            size_bytes=len(data),
            category=category,
            content_hash=content_hash,
            processed=False,
            uploaded_by=user.id,
            created_at=datetime.now(timezone.utc),
        )
        self.db.add(document)
        log_database_operation(logger, "INSERT", "documents", document.id)
        await self.db.commit()

        chunk_count = await self.process(document, data, mime_type)
        return UploadResult(document=document, chunk_count=chunk_count, replaced_document_id=replaced_id)

    async def ingest(self, user: CurrentUser, document_id: str, file_path: str, mime_type: str) -> int:
        """Run the pipeline for an already stored, not yet processed document."""
        document = await self.get_document(document_id)
        ensure_can_modify(user, document)
        if file_path != document.file_path:
            raise ValidationError("filePath does not match the stored document")
        if mime_type not in ALLOWED_MIME_TYPES:
            raise ValidationError(f"Unsupported MIME type: {mime_type}")
        if document.processed:
            raise ConflictError("Document has already been processed")

        stale = await self.chunking.delete_document_chunks(document.id)
        if stale:
            logger.warning(f"Cleared {stale} partial chunks of document {document.id}")

        data = await self.storage.read_bytes(file_path)
        return await self.process(document, data, mime_type)

    async def _embed(self, document_id: str, texts: List[str]) -> List[Optional[List[float]]]:
        if self.embedder is None:
            return [None] * len(texts)
        log_embedding_operation(logger, "GENERATE", document_id, extra_count=len(texts))
        return await self.embedder.embed_batch(texts)

    async def process(self, document: Document, data: bytes, mime_type: str) -> int:
        """
        Extract, chunk, embed and store; then mark the document processed.

        Extraction and embedding failures degrade rather than abort.
        """
        start = time.time()
        loop = asyncio.get_running_loop()
        text = await loop.run_in_executor(None, extract_text, data, mime_type)
        logger.info(f"Extracted {len(text)} characters from document {document.id}")

        pieces = FixedSizeChunking(self.config.CHUNK_SIZE, self.config.CHUNK_OVERLAP).chunk(text)
        embeddings = await self._embed(document.id, [piece["text"] for piece in pieces])
        await self.chunking.create_chunks(document.id, pieces, embeddings)

        document.processed = True
        log_database_operation(logger, "UPDATE", "documents", document.id)
        await self.db.commit()

        embedded = sum(1 for e in embeddings if e is not None)
        documents_ingested_total.labels(mime_type=mime_type).inc()
        chunks_created_total.inc(len(pieces))
        ingestion_duration.observe(time.time() - start)
        logger.info(f"Processed document {document.id}: {len(pieces)} chunks, {embedded} embedded")
        return len(pieces)

    async def remove_document(self, document: Document) -> None:
        """
        Delete blob, chunks and record.

        The steps are not atomic: a crash between them can orphan a blob or chunks.
        """
        await self.storage.delete(document.file_path)
        await self.chunking.delete_document_chunks(document.id)
        log_database_operation(logger, "DELETE", "documents", document.id)
        await self.db.execute(delete(Document).where(Document.id == document.id))
        await self.db.commit()
        logger.info(f"Deleted document {document.id} ({document.file_path})")

    async def delete_document(self, user: CurrentUser, document_id: str) -> None:
        document = await self.get_document(document_id)
        ensure_can_modify(user, document)
        await self.remove_document(document)
