from contextlib import asynccontextmanager

from fastapi import FastAPI
from prometheus_fastapi_instrumentator import Instrumentator

from docassist.api import router
from docassist.core.config import settings
from docassist.core.errors import register_exception_handlers
from docassist.db.base import Base, load_all_models
from docassist.db.sessions import engine
from docassist.utils.logger import get_logger, setup_logging

setup_logging(
    level=settings.LOG_LEVEL,
    console=True,
    file=settings.LOG_TO_FILE,
    json_format=settings.LOG_JSON,
)
logger = get_logger(__name__)

load_all_models()


@asynccontextmanager
async def lifespan(app: FastAPI):
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info(f"{settings.PROJECT_NAME} started")
    yield
    await engine.dispose()


def create_app() -> FastAPI:
    app = FastAPI(title=settings.PROJECT_NAME, version="1.0.0", lifespan=lifespan)

    # Prometheus metrics
    Instrumentator().instrument(app).expose(app)

    register_exception_handlers(app)
    app.include_router(router.api_router)
    return app


app = create_app()
