import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from docassist.core.auth import CurrentUser
from docassist.core.errors import ForbiddenError, NotFoundError
from docassist.db.models.conversation import ChatMessage, Conversation
from docassist.utils.logger import get_logger, log_database_operation

logger = get_logger("services.conversation_service")

TITLE_LENGTH = 80


class ConversationService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_owned(self, user: CurrentUser, conversation_id: str) -> Conversation:
        conversation = await self.db.get(Conversation, conversation_id)
        if conversation is None:
            raise NotFoundError("Conversation not found")
        if conversation.user_id != user.id:
            raise ForbiddenError("This conversation belongs to another user")
        return conversation

    async def get_or_create(self, user: CurrentUser, conversation_id: Optional[str],
                            first_message: str) -> Conversation:
        """Existing conversation of the user, or a new one titled after the first message."""
        if conversation_id:
            return await self.get_owned(user, conversation_id)

        conversation = Conversation(
            id=str(uuid.uuid4()),
            user_id=user.id,
            title=first_message.strip()[:TITLE_LENGTH],
            created_at=datetime.now(timezone.utc),
        )
        self.db.add(conversation)
        log_database_operation(logger, "INSERT", "chat_conversations", conversation.id)
        await self.db.commit()
        return conversation

    async def add_message(self, conversation_id: str, role: str, content: str,
                          sources: Optional[List[Dict[str, Any]]] = None) -> ChatMessage:
        message = ChatMessage(
            id=str(uuid.uuid4()),
            conversation_id=conversation_id,
            role=role,
            content=content,
            sources=sources or None,
            created_at=datetime.now(timezone.utc),
        )
        self.db.add(message)
        log_database_operation(logger, "INSERT", "chat_messages", message.id)
        await self.db.commit()
        return message

    async def list_conversations(self, user: CurrentUser) -> List[Conversation]:
        result = await self.db.execute(
            select(Conversation)
            .where(Conversation.user_id == user.id)
            .order_by(Conversation.created_at.desc())
        )
        return list(result.scalars().all())

    async def list_messages(self, user: CurrentUser, conversation_id: str) -> List[ChatMessage]:
        await self.get_owned(user, conversation_id)
        result = await self.db.execute(
            select(ChatMessage)
            .where(ChatMessage.conversation_id == conversation_id)
            .order_by(ChatMessage.created_at)
        )
        return list(result.scalars().all())
