import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession

from docassist.db.models.chunks import Chunk
from docassist.utils.logger import get_logger, log_database_operation

logger = get_logger("services.chunking_service")


class ChunkingService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def create_chunks(
        self,
        document_id: str,
        pieces: Sequence[Dict[str, Any]],
        embeddings: Sequence[Optional[List[float]]],
    ) -> List[Chunk]:
        """
        Stage chunk rows for a document in chunk_index order.

        ``pieces`` come from ``FixedSizeChunking.chunk``; ``embeddings`` is
        aligned with it. The caller owns the commit.
        """
        if len(pieces) != len(embeddings):
            raise ValueError("pieces and embeddings must have the same length")

        created_at = datetime.now(timezone.utc)
        chunks_to_add = []
        for i, (piece, embedding) in enumerate(zip(pieces, embeddings)):
            chunks_to_add.append(Chunk(
                id=str(uuid.uuid4()),
                document_id=document_id,
                content=piece["text"],
                chunk_index=i,
                start_char=piece.get("start_char"),
                end_char=piece.get("end_char"),
                embedding=embedding,
                created_at=created_at,
            ))

        self.db.add_all(chunks_to_add)
        await self.db.flush()

        if chunks_to_add:
            log_database_operation(logger, "BULK_INSERT", "chunks", f"{len(chunks_to_add)}_chunks")
        return chunks_to_add

    async def delete_document_chunks(self, document_id: str) -> int:
        log_database_operation(logger, "DELETE", "chunks", document_id)
        result = await self.db.execute(delete(Chunk).where(Chunk.document_id == document_id))
        return result.rowcount or 0
