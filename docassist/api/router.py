from fastapi import APIRouter
from docassist.api.v1.routes import chat, conversations, documents, health

api_router = APIRouter(prefix="/api/v1")

api_router.include_router(documents.router, prefix="/documents", tags=["Documents"])
api_router.include_router(chat.router, prefix="/chat", tags=["Chat"])
api_router.include_router(conversations.router, prefix="/conversations", tags=["Conversations"])
api_router.include_router(health.router, prefix="/health", tags=["Health"])
