from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from docassist.core.auth import CurrentUser, get_current_user
from docassist.db.sessions import get_db
from docassist.services.conversation_service import ConversationService
from docassist.utils.dto.chat import ConversationResponse, MessageResponse

router = APIRouter()


@router.get("/", response_model=List[ConversationResponse])
async def list_conversations(
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await ConversationService(db).list_conversations(user)


@router.get("/{conversation_id}/messages", response_model=List[MessageResponse])
async def list_messages(
    conversation_id: str,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await ConversationService(db).list_messages(user, conversation_id)
