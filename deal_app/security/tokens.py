import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

import jwt

from deal_app.core.settings import Settings
from deal_app.models.enums import UserRole

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TokenIdentity:
    id: int
    email: str
    role: UserRole


class TokenSigner:
    def __init__(self, settings: Settings):
        self.secret = settings.JWT_SECRET_KEY
        self.algorithm = settings.ALGORITHM
        self.expires = timedelta(days=settings.TOKEN_EXPIRE_DAYS)

    def sign(self, user) -> str:
        payload = {
            "sub": str(user.id),
            "id": user.id,
            "email": user.email,
            "role": UserRole(user.role).value,
            "exp": datetime.now(timezone.utc) + self.expires,
        }
        return jwt.encode(payload, self.secret, algorithm=self.algorithm)

    def verify(self, token: str) -> TokenIdentity | None:
        try:
            payload = jwt.decode(token, self.secret, algorithms=[self.algorithm])
            return TokenIdentity(
                id=int(payload["id"]),
                email=payload["email"],
                role=UserRole(payload["role"]),
            )
        except jwt.ExpiredSignatureError:
            logger.debug("Expired token presented")
        except (jwt.InvalidTokenError, KeyError, ValueError) as e:
            logger.debug(f"Invalid token presented: {e}")
        return None
