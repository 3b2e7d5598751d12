from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker
from docassist.core.config import settings

engine = create_async_engine(
    settings.DATABASE_URL,
    echo=False,
    pool_size=5,
    max_overflow=10
)

AsyncSessionLocal = async_sessionmaker(
    engine, expire_on_commit=False
)

async def get_db():
    async with AsyncSessionLocal() as session:
        yield session

def get_sessionmaker() -> async_sessionmaker:
    """Session factory for work that outlives the request, such as a finished chat stream."""
    return AsyncSessionLocal
