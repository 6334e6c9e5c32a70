import logging

from fastapi import Depends, Request, Response
from fastapi_limiter import FastAPILimiter
from fastapi_limiter.depends import RateLimiter
from redis.asyncio import from_url

from deal_app.models.enums import UserRole

from .errors import RateLimited
from .settings import Settings

logger = logging.getLogger(__name__)

GUEST = "guest"


def caller_role(request: Request) -> str:
    user = getattr(request.state, "user", None)
    role = getattr(user, "role", None)
    return UserRole(role).value if role is not None else GUEST


class RateLimitManager:
    def __init__(self):
        self.redis = None

    async def connect(self, settings: Settings):
        try:
            self.redis = from_url(
                settings.RATE_LIMIT_REDIS_URL,
                encoding="utf-8",
                decode_responses=True,
            )
            await FastAPILimiter.init(self.redis)
            logger.info("Rate limiter initialized successfully.")
        except Exception as e:
            self.redis = None
            logger.warning(f"Rate limiter initialization failed: {e}")

    async def close(self):
        if self.redis is not None:
            await FastAPILimiter.close()
            self.redis = None

    @staticmethod
    async def limit_exceeded_handler(request: Request, response: Response, pexpire: int):
        role = caller_role(request)
        label = {"admin": "Admin", "user": "User"}.get(role, "Guest")
        logger.warning(
            f"Rate limit exceeded: role={role} path={request.url.path} "
            f"client={request.client.host if request.client else 'unknown'}"
        )
        raise RateLimited(f"{label} rate limit exceeded. Please try again later.")

    @staticmethod
    async def user_or_ip(request: Request) -> str:
        role = caller_role(request)
        user = getattr(request.state, "user", None)
        user_id = getattr(user, "id", None)

        if user_id is not None:
            return f"{role}:user:{user_id}"

        if request.client and request.client.host:
            return f"{role}:ip:{request.client.host}"

        return f"{role}:anonymous"


rate_limiter_manager = RateLimitManager()


class RoleRateLimit:
    """Per-minute request allowance chosen by the caller's role."""

    def __init__(self):
        self._limiters: dict[tuple[str, int], RateLimiter] = {}

    def _limits(self, settings: Settings) -> dict[str, int]:
        return {
            UserRole.ADMIN.value: settings.ADMIN_RATE_LIMIT,
            UserRole.USER.value: settings.USER_RATE_LIMIT,
            GUEST: settings.GUEST_RATE_LIMIT,
        }

    def limiter_for(self, role: str, settings: Settings) -> RateLimiter:
        times = self._limits(settings).get(role, settings.GUEST_RATE_LIMIT)
        key = (role, times)
        if key not in self._limiters:
            self._limiters[key] = RateLimiter(
                times=times,
                minutes=1,
                identifier=rate_limiter_manager.user_or_ip,
                callback=rate_limiter_manager.limit_exceeded_handler,
            )
        return self._limiters[key]

    async def __call__(self, request: Request, response: Response):
        settings: Settings = request.app.state.settings
        if not settings.RATE_LIMIT_ENABLED or FastAPILimiter.redis is None:
            return
        limiter = self.limiter_for(caller_role(request), settings)
        await limiter(request, response)


role_rate_limit = RoleRateLimit()
rate_limit = Depends(role_rate_limit)
