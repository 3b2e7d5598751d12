"""Shared fixtures for the docassist test suite.

- Environment overrides applied before the application is imported
- In-memory SQLite database and session factories
- Fake completion gateway served through ``httpx.MockTransport``
- HTTP client bound to the ASGI app with dependencies overridden
- User, token and document factories
"""

import json
import os
import uuid

os.environ.setdefault("SECRET_KEY", "test-secret")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("LOG_TO_FILE", "false")
os.environ.setdefault("LOG_LEVEL", "WARNING")
os.environ.setdefault("AI_GATEWAY_API_KEY", "test-gateway-key")
os.environ.pop("GEMINI_API_KEY", None)

import httpx  # noqa: E402
import pytest  # noqa: E402
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from docassist.core.auth import CurrentUser  # noqa: E402
from docassist.core.config import settings  # noqa: E402
from docassist.core.rbac import AppRole, allowed_categories  # noqa: E402
from docassist.core.security import create_access_token  # noqa: E402
from docassist.db.base import Base, load_all_models  # noqa: E402
from docassist.db.models.user_role import UserRole  # noqa: E402
from docassist.db.sessions import get_db, get_sessionmaker  # noqa: E402
from docassist.main import app  # noqa: E402
from docassist.services.chat_service import ChatOrchestrator, get_orchestrator  # noqa: E402
from docassist.services.embedding_service import get_embedder  # noqa: E402
from docassist.services.storage_service import StorageService, get_storage  # noqa: E402
from tests.streams import DONE_FRAME, ChunkedStream, delta_frame  # noqa: E402

load_all_models()


class FakeGateway:
    """Stands in for the completion gateway and records every request it gets."""

    def __init__(self):
        self.status_code = 200
        self.chunks = [delta_frame("Hello"), delta_frame(" world"), DONE_FRAME]
        self.requests = []

    def reply(self, chunks, status_code=200):
        self.chunks = list(chunks)
        self.status_code = status_code

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append({
            "url": str(request.url),
            "headers": dict(request.headers),
            "json": json.loads(request.content),
        })
        return httpx.Response(self.status_code, stream=ChunkedStream(self.chunks))

    @property
    def last_payload(self):
        return self.requests[-1]["json"]

    def orchestrator(self) -> ChatOrchestrator:
        return ChatOrchestrator(settings, transport=httpx.MockTransport(self.handler))


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def sessionmaker(engine):
    return async_sessionmaker(engine, expire_on_commit=False)


@pytest.fixture
async def db_session(sessionmaker):
    async with sessionmaker() as session:
        yield session


@pytest.fixture
def storage(tmp_path):
    return StorageService(tmp_path / "uploads")


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
async def client(sessionmaker, storage, gateway):
    async def override_get_db():
        async with sessionmaker() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_sessionmaker] = lambda: sessionmaker
    app.dependency_overrides[get_storage] = lambda: storage
    app.dependency_overrides[get_embedder] = lambda: None
    app.dependency_overrides[get_orchestrator] = gateway.orchestrator

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c

    app.dependency_overrides.clear()


def auth_headers(user_id: str, role_claim: str = "authenticated") -> dict:
    return {"Authorization": f"Bearer {create_access_token(user_id, role_claim=role_claim)}"}


@pytest.fixture
def user_factory(sessionmaker):
    """Create a user with an optional app role; returns (CurrentUser, headers)."""

    async def _create(role=None):
        user_id = f"user-{uuid.uuid4().hex[:8]}"
        parsed = AppRole(role) if role else None
        if parsed is not None:
            async with sessionmaker() as session:
                session.add(UserRole(id=str(uuid.uuid4()), user_id=user_id, role=parsed))
                await session.commit()
        user = CurrentUser(id=user_id, role=parsed, categories=allowed_categories(parsed))
        return user, auth_headers(user_id)

    return _create


@pytest.fixture
def upload_factory(client):
    """Upload through the API; returns the raw response."""

    async def _upload(headers, text="Some document text", file_name="notes.txt",
                      category="general", mime_type="text/plain", **form):
        data = {"category": category, **{k: str(v).lower() if isinstance(v, bool) else v
                                          for k, v in form.items()}}
        files = {"file": (file_name, text.encode("utf-8"), mime_type)}
        return await client.post("/api/v1/documents/", headers=headers, data=data, files=files)

    return _upload
