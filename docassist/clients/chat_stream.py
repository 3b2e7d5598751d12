"""
Reader for the chat event stream.

The stream is a sequence of server-sent ``data:`` lines: an optional first
frame carrying ``{"sources": [...]}``, then completion deltas shaped like
``{"choices": [{"delta": {"content": "..."}}]}``, then ``data: [DONE]``.

``ChatStreamParser`` is a push parser driven by raw bytes. It moves through
``AWAITING_FRAME -> HAVE_SOURCES -> FORWARDING_DELTAS -> DONE`` (sources and
deltas are both optional) and treats a stream that closes before ``[DONE]`` as
interrupted.
"""
import enum
import json
from dataclasses import dataclass, field
from typing import Any, AsyncIterable, Dict, List, Optional

from docassist.utils.logger import get_logger

logger = get_logger(__name__)

DONE_MARKER = "[DONE]"


class StreamState(str, enum.Enum):
    AWAITING_FRAME = "awaiting_frame"
    HAVE_SOURCES = "have_sources"
    FORWARDING_DELTAS = "forwarding_deltas"
    DONE = "done"


class StreamInterruptedError(Exception):
    """The stream ended without its terminal marker, or reported an error."""


@dataclass
class ChatStreamResult:
    text: str
    sources: List[Dict[str, Any]] = field(default_factory=list)


class ChatStreamParser:
    def __init__(self):
        self.state = StreamState.AWAITING_FRAME
        self.sources: List[Dict[str, Any]] = []
        self.error: Optional[str] = None
        self._parts: List[str] = []
        self._buffer = bytearray()

    @property
    def text(self) -> str:
        return "".join(self._parts)

    def feed(self, data: bytes) -> List[str]:
        """Consume raw bytes; return the content fragments completed by them."""
        if self.state == StreamState.DONE:
            return []

        self._buffer.extend(data)
        fragments: List[str] = []
        while self.state != StreamState.DONE:
            newline = self._buffer.find(b"\n")
            if newline == -1:
                break
            raw_line = bytes(self._buffer[:newline])
            del self._buffer[:newline + 1]
            fragment = self._handle_line(raw_line.decode("utf-8", errors="replace").rstrip("\r"))
            if fragment:
                fragments.append(fragment)
        return fragments

    def _handle_line(self, line: str) -> Optional[str]:
        if not line or line.startswith(":") or not line.startswith("data:"):
            return None

        payload = line[len("data:"):].strip()
        if payload == DONE_MARKER:
            self.state = StreamState.DONE
            return None

        try:
            frame = json.loads(payload)
        except json.JSONDecodeError:
            logger.debug(f"Skipping undecodable stream line: {payload[:80]}")
            return None
        if not isinstance(frame, dict):
            return None

        if "sources" in frame and self.state == StreamState.AWAITING_FRAME:
            self.sources = list(frame.get("sources") or [])
            self.state = StreamState.HAVE_SOURCES
            return None

        if "error" in frame:
            error = frame["error"]
            self.error = error.get("message") if isinstance(error, dict) else str(error)
            return None

        self.state = StreamState.FORWARDING_DELTAS
        try:
            content = frame["choices"][0]["delta"].get("content")
        except (KeyError, IndexError, TypeError, AttributeError):
            return None
        if content:
            self._parts.append(content)
            return content
        return None

    def close(self) -> ChatStreamResult:
        """Finish the stream; raises if it never reached its terminal marker."""
        if self.error:
            raise StreamInterruptedError(f"Upstream reported an error: {self.error}")
        if self.state != StreamState.DONE:
            raise StreamInterruptedError(f"Stream closed in state {self.state.value}")
        return ChatStreamResult(text=self.text, sources=self.sources)


async def read_chat_stream(chunks: AsyncIterable[bytes]) -> ChatStreamResult:
    """Drain a chat byte stream into its final text and sources."""
    parser = ChatStreamParser()
    async for chunk in chunks:
        parser.feed(chunk)
    return parser.close()
