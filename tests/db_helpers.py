"""Read-side queries the tests use to inspect stored chunks."""

from typing import List

from sqlalchemy import func, select

from docassist.db.models.chunks import Chunk


async def document_chunks(session, document_id: str) -> List[Chunk]:
    result = await session.execute(
        select(Chunk).where(Chunk.document_id == document_id).order_by(Chunk.chunk_index)
    )
    return list(result.scalars().all())


async def count_chunks(session, document_id: str) -> int:
    result = await session.execute(
        select(func.count()).select_from(Chunk).where(Chunk.document_id == document_id)
    )
    return result.scalar_one()
