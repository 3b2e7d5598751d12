import json
import time
from typing import AsyncIterator, Dict, List, Optional

import httpx

from docassist.core.config import Settings, settings
from docassist.core.errors import (
    InternalError,
    UpstreamQuotaExceededError,
    UpstreamRateLimitError,
    UpstreamServiceError,
)
from docassist.services.search_service import RetrievalResult
from docassist.utils.logger import get_logger, log_upstream_call
from docassist.utils.metrics import upstream_errors_total

logger = get_logger("services.chat_service")

ASSISTANT_PREAMBLE = "You are an enterprise knowledge assistant."

CONTEXT_PROMPT = (
    ASSISTANT_PREAMBLE + " Use the following document excerpts to answer the user's question. "
    "Always cite which document(s) you used. If the documents don't contain relevant "
    "information, say so honestly.\n\nDOCUMENT CONTEXT:\n{context}"
)

NO_CONTEXT_PROMPT = (
    ASSISTANT_PREAMBLE + " No documents have been uploaded yet, or no relevant documents "
    "were found for this query. Let the user know they may need to upload relevant documents first."
)

EXCERPT_SEPARATOR = "\n\n---\n\n"


def build_system_prompt(retrieval: RetrievalResult) -> str:
    if not retrieval.chunks:
        return NO_CONTEXT_PROMPT
    context = EXCERPT_SEPARATOR.join(
        f"[Source: {chunk.source_title}]\n{chunk.content}" for chunk in retrieval.chunks
    )
    return CONTEXT_PROMPT.format(context=context)


def sources_frame(sources: List[Dict[str, str]]) -> bytes:
    return f"data: {json.dumps({'sources': sources})}\n\n".encode("utf-8")


class ChatStream:
    """
    An open upstream completion stream.

    Iterating yields the sources frame (when there are sources) and then the
    upstream bytes exactly as received. The upstream request is closed when
    iteration ends, fails or is cancelled.
    """

    def __init__(self, client: httpx.AsyncClient, response: httpx.Response,
                 sources: List[Dict[str, str]]):
        self._client = client
        self._response = response
        self.sources = sources
        self.upstream_bytes = 0
        self._closed = False

    async def __aiter__(self) -> AsyncIterator[bytes]:
        try:
            if self.sources:
                yield sources_frame(self.sources)
            async for chunk in self._response.aiter_bytes():
                self.upstream_bytes += len(chunk)
                yield chunk
        finally:
            await self.aclose()

    async def aclose(self) -> None:
        if self._closed:
            return
        self._closed = True
        await self._response.aclose()
        await self._client.aclose()


class ChatOrchestrator:
    """Sends the conversation plus retrieved context to the completion gateway."""

    def __init__(self, config: Settings = settings,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        self.config = config
        self._transport = transport

    def _payload(self, messages: List[Dict[str, str]], retrieval: RetrievalResult) -> dict:
        return {
            "model": self.config.CHAT_MODEL,
            "messages": [{"role": "system", "content": build_system_prompt(retrieval)}, *messages],
            "stream": True,
        }

    async def _raise_for_status(self, response: httpx.Response) -> None:
        if response.is_success:
            return
        body = (await response.aread()).decode("utf-8", errors="replace")
        upstream_errors_total.labels(status=str(response.status_code)).inc()
        logger.error(f"AI gateway error: {response.status_code} {body[:500]}")
        if response.status_code == 429:
            raise UpstreamRateLimitError()
        if response.status_code == 402:
            raise UpstreamQuotaExceededError()
        raise UpstreamServiceError()

    async def open_stream(self, messages: List[Dict[str, str]], retrieval: RetrievalResult) -> ChatStream:
        """
        Start a streaming completion.

        Gateway failures are raised here, during the handshake, before anything
        is sent to the caller.
        """
        if not self.config.AI_GATEWAY_API_KEY:
            logger.error("AI_GATEWAY_API_KEY is not set; cannot open a chat stream")
            raise InternalError()

        client = httpx.AsyncClient(timeout=self.config.CHAT_TIMEOUT_SECONDS, transport=self._transport)
        request = client.build_request(
            "POST",
            self.config.AI_GATEWAY_URL,
            headers={
                "Authorization": f"Bearer {self.config.AI_GATEWAY_API_KEY}",
                "Content-Type": "application/json",
                "Accept-Encoding": "identity",
            },
            json=self._payload(messages, retrieval),
        )

        start = time.time()
        try:
            response = await client.send(request, stream=True)
        except httpx.HTTPError as e:
            await client.aclose()
            upstream_errors_total.labels(status="connection").inc()
            logger.error(f"AI gateway request failed: {e}")
            raise UpstreamServiceError() from e
        log_upstream_call(logger, "chat", response.status_code, (time.time() - start) * 1000)

        try:
            await self._raise_for_status(response)
        except Exception:
            await response.aclose()
            await client.aclose()
            raise

        return ChatStream(client, response, retrieval.sources)


def get_orchestrator() -> ChatOrchestrator:
    return ChatOrchestrator(settings)
