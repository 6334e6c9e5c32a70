import pytest
from sqlalchemy.exc import IntegrityError
from starlette.requests import Request

from conftest import make_settings
from deal_app.core.breaker import CircuitBreaker, CircuitOpenError
from deal_app.core.errors import InvalidState, RateLimited
from deal_app.core.friendly_msg import get_friendly_message
from deal_app.core.throttling import RoleRateLimit, caller_role, rate_limiter_manager
from deal_app.models.enums import UserRole
from deal_app.security.tokens import TokenIdentity, TokenSigner


def fake_request(user=None, host="10.0.0.7"):
    request = Request(
        {
            "type": "http",
            "method": "GET",
            "path": "/api/deals/listings",
            "headers": [],
            "query_string": b"",
            "client": (host, 5000),
        }
    )
    request.state.user = user
    return request


class StubUser:
    id = 42
    email = "ada@example.com"
    role = UserRole.ADMIN


class TestCircuitBreaker:
    async def test_domain_errors_do_not_trip(self):
        breaker = CircuitBreaker(failure_threshold=2)

        async def refuse():
            raise InvalidState("nope")

        for _ in range(5):
            with pytest.raises(InvalidState):
                await breaker.call(refuse)

        assert breaker.state == "CLOSED"
        assert breaker.failure_count == 0

    async def test_opens_after_repeated_failures(self):
        breaker = CircuitBreaker(failure_threshold=2, base_recovery_time=60)

        async def explode():
            raise RuntimeError("db down")

        for _ in range(2):
            with pytest.raises(RuntimeError):
                await breaker.call(explode)

        assert breaker.state == "OPEN"
        with pytest.raises(CircuitOpenError):
            await breaker.call(explode)

    async def test_constraint_violations_do_not_trip(self):
        breaker = CircuitBreaker(failure_threshold=2)

        async def duplicate():
            raise IntegrityError("INSERT", {}, Exception("UNIQUE constraint failed"))

        for _ in range(5):
            with pytest.raises(IntegrityError):
                await breaker.call(duplicate)

        assert breaker.state == "CLOSED"
        assert breaker.failure_count == 0

    async def test_success_closes_again(self):
        breaker = CircuitBreaker(failure_threshold=1, base_recovery_time=0)

        async def explode():
            raise RuntimeError("db down")

        async def ok():
            return "ok"

        with pytest.raises(RuntimeError):
            await breaker.call(explode)
        assert breaker.state == "OPEN"

        assert await breaker.call(ok) == "ok"
        assert breaker.state == "CLOSED"

    def test_friendly_message(self):
        assert "temporarily unavailable" in get_friendly_message(CircuitOpenError("x"))
        assert get_friendly_message(KeyError("x")).startswith("Something went wrong")


class TestTokens:
    def test_verify_signed_token(self, tmp_path):
        signer = TokenSigner(make_settings(tmp_path))

        identity = signer.verify(signer.sign(StubUser()))

        assert identity == TokenIdentity(id=42, email="ada@example.com", role=UserRole.ADMIN)

    def test_expired_token(self, tmp_path):
        signer = TokenSigner(make_settings(tmp_path, TOKEN_EXPIRE_DAYS=-1))

        assert signer.verify(signer.sign(StubUser())) is None

    def test_foreign_secret(self, tmp_path):
        token = TokenSigner(make_settings(tmp_path, JWT_SECRET_KEY="other")).sign(StubUser())

        assert TokenSigner(make_settings(tmp_path)).verify(token) is None


class TestThrottling:
    def test_caller_role(self):
        assert caller_role(fake_request()) == "guest"
        assert caller_role(fake_request(StubUser())) == "admin"

    async def test_bucket_key(self):
        assert await rate_limiter_manager.user_or_ip(fake_request(StubUser())) == "admin:user:42"
        assert await rate_limiter_manager.user_or_ip(fake_request()) == "guest:ip:10.0.0.7"

    async def test_exceeded_message_names_role(self):
        with pytest.raises(RateLimited) as exc_info:
            await rate_limiter_manager.limit_exceeded_handler(fake_request(), None, 1000)

        assert exc_info.value.status_code == 429
        assert exc_info.value.detail == "Guest rate limit exceeded. Please try again later."

    def test_limit_per_role(self, tmp_path):
        settings = make_settings(tmp_path)
        limits = RoleRateLimit()

        assert limits.limiter_for("admin", settings).times == 20
        assert limits.limiter_for("user", settings).times == 10
        assert limits.limiter_for("guest", settings).times == 5
        assert limits.limiter_for("admin", settings) is limits.limiter_for("admin", settings)
