import time
import uuid
from typing import Optional

import redis.asyncio as aioredis
from fastapi import Depends

from docassist.core.auth import CurrentUser, get_current_user
from docassist.core.config import settings
from docassist.core.errors import RateLimitError
from docassist.utils.logger import get_logger

logger = get_logger(__name__)

redis_client = aioredis.Redis(
    host=settings.REDIS_HOST,
    port=settings.REDIS_PORT,
    db=0,
    decode_responses=True
)


class SlidingWindowLimiter:
    """
    Per-user request limit over a trailing window.

    Each request is a member of a Redis sorted set scored by its timestamp;
    members older than the window are dropped before counting.
    """

    def __init__(self, action: str, max_requests: int, window_seconds: int = 60,
                 client: Optional[aioredis.Redis] = None):
        self.action = action
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._client = client

    @property
    def client(self) -> aioredis.Redis:
        return self._client or redis_client

    def key(self, user_id: str) -> str:
        return f"rate_limit:{user_id}:{self.action}"

    async def hit(self, user_id: str) -> int:
        """Record one request and return how many fall inside the window."""
        key = self.key(user_id)
        now = time.time()
        # uuid suffix keeps requests within the same instant distinct
        member = f"{now}:{uuid.uuid4().hex}"

        pipe = self.client.pipeline()
        pipe.zremrangebyscore(key, 0, now - self.window_seconds)
        pipe.zadd(key, {member: now})
        pipe.zcard(key)
        pipe.expire(key, self.window_seconds + 10)
        results = await pipe.execute()
        return results[2]

    async def check(self, user_id: str) -> None:
        count = await self.hit(user_id)
        if count > self.max_requests:
            logger.warning(f"User {user_id} exceeded the {self.action} limit ({count}/{self.max_requests})")
            raise RateLimitError(f"Rate limit exceeded for {self.action}. Try again later.")

    async def __call__(self, user: CurrentUser = Depends(get_current_user)) -> None:
        if not settings.RATE_LIMIT_ENABLED:
            return
        await self.check(user.id)


upload_rate_limit = SlidingWindowLimiter("uploads", settings.UPLOADS_PER_MINUTE)
chat_rate_limit = SlidingWindowLimiter("chats", settings.CHATS_PER_MINUTE)
