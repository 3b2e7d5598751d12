import asyncio
import json
import math
import time
from functools import lru_cache, partial
from typing import Any, List, Optional, Protocol

import google.generativeai as genai
from google.api_core import exceptions as google_exceptions
from tenacity import retry, stop_after_attempt, wait_exponential, retry_if_exception_type

from docassist.core.config import Settings, settings
from docassist.utils.logger import get_logger
from docassist.utils.metrics import embedding_generation_total, embedding_generation_duration

logger = get_logger("services.embedding_service")

EMBEDDING_INSTRUCTION = (
    "Generate a {dimension}-dimensional embedding vector for the following text. "
    "Return ONLY a JSON array of {dimension} floating point numbers between -1 and 1. No other text."
)


class Embedder(Protocol):
    dimension: int

    async def embed_text(self, text: str) -> Optional[List[float]]: ...

    async def embed_batch(self, texts: List[str]) -> List[Optional[List[float]]]: ...


def _strip_code_fence(raw: str) -> str:
    text = raw.strip()
    if text.startswith("```"):
        text = text.split("\n", 1)[1] if "\n" in text else ""
        if text.rstrip().endswith("```"):
            text = text.rstrip()[:-3]
    return text.strip()


def parse_embedding(raw: Optional[str], dimension: int) -> Optional[List[float]]:
    """
    Validate a model reply as an embedding.

    Returns None unless the reply is a JSON array of exactly ``dimension``
    finite numbers.
    """
    if not raw:
        return None
    try:
        value = json.loads(_strip_code_fence(raw))
    except (json.JSONDecodeError, TypeError):
        return None

    if not isinstance(value, list) or len(value) != dimension:
        return None
    for entry in value:
        if isinstance(entry, bool) or not isinstance(entry, (int, float)):
            return None
        if not math.isfinite(entry):
            return None
    return [float(entry) for entry in value]


class GeminiEmbeddingService:
    """
    Approximate embeddings obtained by prompting a generative model.

    Any failure yields None for that chunk; ingestion never aborts because of it.
    """

    def __init__(self, api_key: Optional[str] = None, model: str = "gemini-2.5-flash-lite",
                 dimension: int = 768, excerpt_chars: int = 300, concurrency: int = 4,
                 client: Any = None):
        self.dimension = dimension
        self.excerpt_chars = excerpt_chars
        self._semaphore = asyncio.Semaphore(max(1, concurrency))
        if client is None:
            genai.configure(api_key=api_key)
            client = genai.GenerativeModel(
                model,
                system_instruction=EMBEDDING_INSTRUCTION.format(dimension=dimension),
            )
        self.client = client

    @retry(
        stop=stop_after_attempt(2),
        wait=wait_exponential(multiplier=1, min=1, max=5),
        retry=retry_if_exception_type((
            ConnectionError,
            TimeoutError,
            google_exceptions.ServiceUnavailable,
            google_exceptions.DeadlineExceeded,
            google_exceptions.InternalServerError,
        )),
        reraise=True,
    )
    async def _generate(self, excerpt: str) -> str:
        """Run the blocking SDK call in the default executor."""
        loop = asyncio.get_running_loop()
        response = await loop.run_in_executor(
            None,
            partial(self.client.generate_content, excerpt)
        )
        return response.text

    async def embed_text(self, text: str) -> Optional[List[float]]:
        if not text.strip():
            embedding_generation_total.labels(status="skipped").inc()
            return None

        start = time.time()
        try:
            raw = await self._generate(text[:self.excerpt_chars])
        except Exception as e:
            embedding_generation_total.labels(status="failed").inc()
            logger.warning(f"Embedding generation failed: {e}")
            return None
        finally:
            embedding_generation_duration.observe(time.time() - start)

        embedding = parse_embedding(raw, self.dimension)
        if embedding is None:
            embedding_generation_total.labels(status="invalid").inc()
            logger.debug("Model reply was not a valid embedding")
            return None

        embedding_generation_total.labels(status="success").inc()
        return embedding

    async def _bounded_embed(self, text: str) -> Optional[List[float]]:
        async with self._semaphore:
            return await self.embed_text(text)

    async def embed_batch(self, texts: List[str]) -> List[Optional[List[float]]]:
        """Embed concurrently through a bounded pool; results keep input order."""
        return list(await asyncio.gather(*(self._bounded_embed(text) for text in texts)))


def build_embedder(config: Settings) -> Optional[Embedder]:
    """The configured embedder, or None when no backend is set up."""
    if not config.GEMINI_API_KEY:
        logger.info("GEMINI_API_KEY not set; chunks will be stored without embeddings")
        return None
    return GeminiEmbeddingService(
        api_key=config.GEMINI_API_KEY,
        model=config.EMBEDDING_MODEL,
        dimension=config.EMBEDDING_DIMENSION,
        excerpt_chars=config.EMBEDDING_EXCERPT_CHARS,
        concurrency=config.EMBEDDING_CONCURRENCY,
    )


@lru_cache(maxsize=1)
def get_embedder() -> Optional[Embedder]:
    return build_embedder(settings)
