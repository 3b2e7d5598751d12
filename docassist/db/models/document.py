from sqlalchemy import Column, String, DateTime, Integer, Boolean, Enum
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from docassist.core.rbac import DocumentCategory
from docassist.db.base import Base
import uuid

class Document(Base):
    __tablename__ = "documents"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    title = Column(String, nullable=False)
    file_name = Column(String, nullable=False, index=True)
    file_path = Column(String, nullable=False)
    mime_type = Column(String, nullable=False)
    size_bytes = Column(Integer, nullable=False)
    category = Column(Enum(DocumentCategory, name="document_category"), nullable=False,
                      default=DocumentCategory.general, index=True)
    # not unique: concurrent identical uploads are tolerated and reconciled later
    content_hash = Column(String(64), nullable=False, index=True)
    processed = Column(Boolean, nullable=False, default=False)
    uploaded_by = Column(String, nullable=False, index=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)

    chunks = relationship("Chunk", back_populates="document", cascade="all, delete-orphan",
                          passive_deletes=True)
