import logging

from deal_app.core.breaker import breaker
from deal_app.core.errors import Conflict, Unauthenticated
from deal_app.core.settings import Settings
from deal_app.models.models import User
from deal_app.repos.users_repo import UsersRepo
from deal_app.schemas.schema import SignInSchema, SignUpSchema
from deal_app.security.tokens import TokenSigner

logger = logging.getLogger(__name__)


class AuthService:
    def __init__(self, db, settings: Settings):
        self.repo: UsersRepo = UsersRepo(db)
        self.signer: TokenSigner = TokenSigner(settings)

    async def sign_up(self, data: SignUpSchema) -> tuple[User, str]:
        async def handler():
            if await self.repo.get_by_email(email=data.email):
                logger.warning(f"Sign-up rejected, email already registered: {data.email}")
                raise Conflict("User already exists!")

            user = User(name=data.name, email=data.email, role=data.role)
            user.normalize()
            user.set_password(raw_password=data.password)
            await self.repo.create(user)

            logger.info(f"User signed up user_id={user.id} role={user.role.value}")
            return user, self.signer.sign(user)

        return await breaker.call(handler)

    async def sign_in(self, data: SignInSchema) -> tuple[User, str]:
        async def handler():
            user = await self.repo.get_by_email(data.email)
            if not user or not user.check_password(raw_password=data.password):
                raise Unauthenticated("Invalid credentials")

            logger.info(f"User signed in user_id={user.id}")
            return user, self.signer.sign(user)

        return await breaker.call(handler)
