from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from docassist.core.rbac import DocumentCategory


class DocumentResponse(BaseModel):
    id: str
    title: str
    file_name: str = Field(serialization_alias="fileName")
    file_path: str = Field(serialization_alias="filePath")
    mime_type: str = Field(serialization_alias="mimeType")
    size_bytes: int = Field(serialization_alias="sizeBytes")
    category: DocumentCategory
    content_hash: str = Field(serialization_alias="contentHash")
    processed: bool
    uploaded_by: str = Field(serialization_alias="uploadedBy")
    created_at: Optional[datetime] = Field(None, serialization_alias="createdAt")

    model_config = ConfigDict(from_attributes=True)


class UploadResponse(BaseModel):
    document: DocumentResponse
    chunk_count: int = Field(serialization_alias="chunkCount")
    replaced_document_id: Optional[str] = Field(None, serialization_alias="replacedDocumentId")


class IngestRequest(BaseModel):
    document_id: str = Field(..., alias="documentId", min_length=1)
    file_path: str = Field(..., alias="filePath", min_length=1)
    mime_type: str = Field(..., alias="mimeType", min_length=1)

    model_config = ConfigDict(populate_by_name=True)


class IngestResponse(BaseModel):
    success: bool = True
    chunk_count: int = Field(serialization_alias="chunkCount")
