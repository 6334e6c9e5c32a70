import logging
from typing import List

from deal_app.core.breaker import breaker
from deal_app.core.check_permission import CheckRolePermission
from deal_app.core.errors import Conflict, Forbidden, NotFound
from deal_app.core.settings import Settings
from deal_app.models.enums import UserRole
from deal_app.models.models import User
from deal_app.repos.users_repo import UsersRepo
from deal_app.schemas.schema import UserUpdateSchema

logger = logging.getLogger(__name__)


class UsersService:
    def __init__(self, db, settings: Settings):
        self.repo: UsersRepo = UsersRepo(db)
        self.permission: CheckRolePermission = CheckRolePermission()
        self.delete_policy = settings.USER_DELETE_POLICY

    async def _get(self, user_id: int) -> User:
        user = await self.repo.by_id(user_id)
        if not user:
            raise NotFound("User not found")
        return user

    async def get_all_users(self, current_user) -> List[User]:
        async def handler():
            await self.permission.check_admin(current_user)
            return await self.repo.get_all()

        return await breaker.call(handler)

    async def get_user(self, user_id: int, current_user) -> User:
        async def handler():
            await self.permission.check_admin_or_self(current_user, user_id)
            return await self._get(user_id)

        return await breaker.call(handler)

    async def update_user(
        self, user_id: int, data: UserUpdateSchema, current_user
    ) -> User:
        async def handler():
            await self.permission.check_admin_or_self(current_user, user_id)
            user = await self._get(user_id)

            updates = data.model_dump(exclude_unset=True, exclude_none=True)
            if "role" in updates and current_user.role != UserRole.ADMIN:
                raise Forbidden("Only an admin can change roles")
            if "email" in updates and updates["email"] != user.email:
                if await self.repo.get_by_email(updates["email"]):
                    raise Conflict("Email already registered")

            updated = await self.repo.update(user, **updates)
            logger.info(
                f"User updated user_id={user_id} by={current_user.id} fields={sorted(updates)}"
            )
            return updated

        return await breaker.call(handler)

    async def delete_user(self, user_id: int, current_user) -> None:
        async def handler():
            await self.permission.check_admin_or_self(current_user, user_id)
            await self._get(user_id)

            if self.delete_policy == "cascade":
                await self.repo.delete_cascade(user_id)
            else:
                if await self.repo.is_referenced(user_id):
                    raise Conflict(
                        "User still has listings, deals or messages and cannot be deleted"
                    )
                await self.repo.delete(user_id)

            logger.info(
                f"User deleted user_id={user_id} by={current_user.id} policy={self.delete_policy}"
            )

        return await breaker.call(handler)
