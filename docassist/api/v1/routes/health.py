from datetime import datetime, timezone
import os

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from docassist.core.config import settings
from docassist.db.sessions import get_db

router = APIRouter()


@router.get("/", summary="Health check")
async def health(db: AsyncSession = Depends(get_db)):
    await db.execute(text("SELECT 1"))
    return {
        "message": f"Welcome to {settings.PROJECT_NAME}",
        "status": "ok",
        "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
        "git_commit": os.getenv("GIT_COMMIT"),
    }
