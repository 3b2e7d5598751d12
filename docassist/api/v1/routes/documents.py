from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from docassist.core.auth import CurrentUser, get_current_user
from docassist.core.rate_limiter import upload_rate_limit
from docassist.core.rbac import DocumentCategory
from docassist.db.sessions import get_db
from docassist.services.document_service import DocumentService
from docassist.services.embedding_service import Embedder, get_embedder
from docassist.services.storage_service import StorageService, get_storage
from docassist.utils.dto.document import (
    DocumentResponse,
    IngestRequest,
    IngestResponse,
    UploadResponse,
)
from docassist.utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter()


def get_document_service(
    db: AsyncSession = Depends(get_db),
    storage: StorageService = Depends(get_storage),
    embedder: Optional[Embedder] = Depends(get_embedder),
) -> DocumentService:
    return DocumentService(db, storage, embedder)


@router.post(
    "/",
    response_model=UploadResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(upload_rate_limit)],
)
async def upload_document(
    file: UploadFile = File(...),
    category: DocumentCategory = Form(DocumentCategory.general),
    title: Optional[str] = Form(None),
    replace: bool = Form(False),
    user: CurrentUser = Depends(get_current_user),
    service: DocumentService = Depends(get_document_service),
):
    """Upload a document, then extract, chunk and embed it."""
    logger.info(f"Uploading file '{file.filename}' for user {user.id}")
    # one byte past the limit is enough to reject an oversized file
    data = await file.read(service.config.MAX_UPLOAD_BYTES + 1)
    result = await service.upload(
        user,
        file_name=file.filename or "",
        mime_type=file.content_type or "",
        data=data,
        category=category,
        title=title,
        replace=replace,
    )
    return UploadResponse(
        document=DocumentResponse.model_validate(result.document),
        chunk_count=result.chunk_count,
        replaced_document_id=result.replaced_document_id,
    )


@router.post("/ingest", response_model=IngestResponse)
async def ingest_document(
    payload: IngestRequest,
    user: CurrentUser = Depends(get_current_user),
    service: DocumentService = Depends(get_document_service),
):
    """(Re)run the ingestion pipeline for a stored document that is not processed yet."""
    chunk_count = await service.ingest(user, payload.document_id, payload.file_path, payload.mime_type)
    return IngestResponse(success=True, chunk_count=chunk_count)


@router.get("/", response_model=List[DocumentResponse])
async def list_documents(
    user: CurrentUser = Depends(get_current_user),
    service: DocumentService = Depends(get_document_service),
):
    """Documents in the categories the caller may read, newest first."""
    return await service.list_documents(user)


@router.delete("/{document_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_document(
    document_id: str,
    user: CurrentUser = Depends(get_current_user),
    service: DocumentService = Depends(get_document_service),
):
    await service.delete_document(user, document_id)
