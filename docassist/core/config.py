import os
from typing import Optional
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    PROJECT_NAME: str = "Document Assistant"
    SECRET_KEY: str = os.getenv("SECRET_KEY", "your_secret_key")
    ALGORITHM: str = "HS256"

    DATABASE_URL: str = os.getenv(
        "DATABASE_URL",
        "postgresql+asyncpg://postgres:postgres@db:5432/docassist"
    )

    REDIS_HOST: str = os.getenv("REDIS_HOST", "localhost")
    REDIS_PORT: int = int(os.getenv("REDIS_PORT", 6379))
    RATE_LIMIT_ENABLED: bool = True
    UPLOADS_PER_MINUTE: int = 10
    CHATS_PER_MINUTE: int = 30

    UPLOAD_DIR: str = "uploads"
    MAX_UPLOAD_BYTES: int = 20 * 1024 * 1024

    CHUNK_SIZE: int = 500
    CHUNK_OVERLAP: int = 50

    # OpenAI-compatible chat completions gateway
    AI_GATEWAY_URL: str = "https://ai.gateway.lovable.dev/v1/chat/completions"
    AI_GATEWAY_API_KEY: Optional[str] = None
    CHAT_MODEL: str = "google/gemini-3-flash-preview"
    CHAT_TIMEOUT_SECONDS: float = 120.0

    GEMINI_API_KEY: Optional[str] = None
    EMBEDDING_MODEL: str = "gemini-2.5-flash-lite"
    EMBEDDING_DIMENSION: int = 768
    EMBEDDING_EXCERPT_CHARS: int = 300
    EMBEDDING_CONCURRENCY: int = 4

    LOG_LEVEL: str = "INFO"
    LOG_TO_FILE: bool = True
    LOG_JSON: bool = False

    class Config:
        env_file = ".env"
        frozen = True


settings = Settings()
