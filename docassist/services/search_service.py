import re
import time
from dataclasses import dataclass, field
from typing import Collection, Dict, List

from sqlalchemy import and_, select
from sqlalchemy.ext.asyncio import AsyncSession

from docassist.core.rbac import DocumentCategory
from docassist.db.models.chunks import Chunk
from docassist.db.models.document import Document
from docassist.utils.logger import get_logger, log_database_operation
from docassist.utils.metrics import retrieval_requests_total

logger = get_logger("services.search")

MAX_QUERY_TOKENS = 8
MIN_TOKEN_LENGTH = 3
CANDIDATE_POOL = 15
MAX_RESULTS = 10
FALLBACK_LIMIT = 10

# anything that is not a letter or digit, including LIKE wildcards
_SYNTAX_CHARS = re.compile(r"[\W_]+", re.UNICODE)


@dataclass(frozen=True)
class RetrievedChunk:
    content: str
    source_title: str
    source_category: DocumentCategory


@dataclass
class RetrievalResult:
    chunks: List[RetrievedChunk] = field(default_factory=list)
    path: str = "empty"  # lexical | fallback | empty

    @property
    def sources(self) -> List[Dict[str, str]]:
        """Distinct sources by title, first-seen order."""
        seen = set()
        sources = []
        for chunk in self.chunks:
            if chunk.source_title in seen:
                continue
            seen.add(chunk.source_title)
            sources.append({"title": chunk.source_title, "category": chunk.source_category.value})
        return sources


def sanitize_query(query: str) -> List[str]:
    """
    Keyword tokens for lexical matching.

    Syntax characters are stripped, tokens of two characters or fewer are
    dropped and at most eight tokens are kept.
    """
    tokens = _SYNTAX_CHARS.sub(" ", query or "").split()
    return [token for token in tokens if len(token) >= MIN_TOKEN_LENGTH][:MAX_QUERY_TOKENS]


def to_conjunction(tokens: List[str]) -> str:
    return " & ".join(tokens)


class SearchService:
    """Category-scoped lexical retrieval with a recency fallback."""

    def __init__(self, db: AsyncSession):
        self.db = db

    def _scoped(self, categories: Collection[DocumentCategory]):
        return (
            select(Chunk.content, Document.title, Document.category)
            .join(Document, Chunk.document_id == Document.id)
            .where(Document.category.in_(list(categories)))
        )

    async def lexical_search(self, tokens: List[str],
                             categories: Collection[DocumentCategory]) -> List[RetrievedChunk]:
        if not tokens or not categories:
            return []
        log_database_operation(logger, "SELECT", "chunks", to_conjunction(tokens))
        stmt = (
            self._scoped(categories)
            .where(and_(*(Chunk.content.ilike(f"%{token}%") for token in tokens)))
            .order_by(Document.created_at.desc(), Chunk.chunk_index)
            .limit(CANDIDATE_POOL)
        )
        rows = (await self.db.execute(stmt)).all()
        return [RetrievedChunk(content, title, category) for content, title, category in rows[:MAX_RESULTS]]

    async def recent_chunks(self, categories: Collection[DocumentCategory]) -> List[RetrievedChunk]:
        if not categories:
            return []
        log_database_operation(logger, "SELECT", "chunks", "recent")
        stmt = (
            self._scoped(categories)
            .order_by(Chunk.created_at.desc(), Chunk.chunk_index)
            .limit(FALLBACK_LIMIT)
        )
        rows = (await self.db.execute(stmt)).all()
        return [RetrievedChunk(content, title, category) for content, title, category in rows]

    async def retrieve(self, query: str, categories: Collection[DocumentCategory]) -> RetrievalResult:
        """
        Chunks matching every query keyword within the allowed categories; when
        nothing matches, the most recently ingested chunks in those categories.
        """
        start = time.time()
        tokens = sanitize_query(query)

        chunks = await self.lexical_search(tokens, categories)
        path = "lexical"
        if not chunks:
            chunks = await self.recent_chunks(categories)
            path = "fallback" if chunks else "empty"

        retrieval_requests_total.labels(path=path).inc()
        logger.info(
            f"Retrieved {len(chunks)} chunks via {path} path in {(time.time() - start) * 1000:.1f}ms "
            f"(query: '{to_conjunction(tokens)}')"
        )
        return RetrievalResult(chunks=chunks, path=path)
