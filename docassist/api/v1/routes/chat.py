from typing import AsyncIterator

from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from docassist.clients.chat_stream import ChatStreamParser, StreamInterruptedError
from docassist.core.auth import CurrentUser, get_current_user
from docassist.core.rate_limiter import chat_rate_limit
from docassist.db.sessions import get_db, get_sessionmaker
from docassist.services.chat_service import ChatOrchestrator, ChatStream, get_orchestrator
from docassist.services.conversation_service import ConversationService
from docassist.services.search_service import SearchService
from docassist.utils.dto.chat import ChatRequest
from docassist.utils.logger import get_logger
from docassist.utils.metrics import chat_streams_total

logger = get_logger(__name__)

router = APIRouter()

STREAM_HEADERS = {
    "Cache-Control": "no-cache",
    "X-Accel-Buffering": "no",
}


async def relay_and_record(
    stream: ChatStream,
    conversation_id: str,
    sessionmaker: async_sessionmaker,
) -> AsyncIterator[bytes]:
    """
    Forward the stream unchanged while reading it on the side, then store the
    assistant turn once the stream has finished with its terminal marker.
    """
    parser = ChatStreamParser()
    outcome = "interrupted"
    try:
        async for frame in stream:
            yield frame
            parser.feed(frame)

        try:
            result = parser.close()
        except StreamInterruptedError as e:
            logger.warning(f"Chat stream for conversation {conversation_id} ended early: {e}")
            return

        outcome = "completed"
        async with sessionmaker() as db:
            await ConversationService(db).add_message(
                conversation_id, "assistant", result.text, sources=stream.sources
            )
        logger.info(
            f"Chat stream for conversation {conversation_id} completed: "
            f"{stream.upstream_bytes} bytes, {len(result.text)} characters"
        )
    finally:
        chat_streams_total.labels(outcome=outcome).inc()
        await stream.aclose()


@router.post("/", dependencies=[Depends(chat_rate_limit)])
async def chat(
    payload: ChatRequest,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    sessionmaker: async_sessionmaker = Depends(get_sessionmaker),
    orchestrator: ChatOrchestrator = Depends(get_orchestrator),
):
    """
    Answer the last user message from documents the caller may read.

    Responds with server-sent events: a sources frame (when any were found),
    then the completion deltas as produced by the model.
    """
    question = payload.messages[-1].content
    conversations = ConversationService(db)
    conversation = await conversations.get_or_create(user, payload.conversation_id, question)
    await conversations.add_message(conversation.id, "user", question)

    retrieval = await SearchService(db).retrieve(question, user.categories)
    messages = [message.model_dump() for message in payload.messages]
    try:
        stream = await orchestrator.open_stream(messages, retrieval)
    except Exception:
        chat_streams_total.labels(outcome="rejected").inc()
        raise

    return StreamingResponse(
        relay_and_record(stream, conversation.id, sessionmaker),
        media_type="text/event-stream",
        headers={**STREAM_HEADERS, "X-Conversation-Id": conversation.id},
    )
