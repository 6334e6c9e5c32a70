from deal_app.models.enums import UserRole

from .errors import Forbidden


class CheckRolePermission:
    async def check_admin(self, current_user):
        if current_user.role != UserRole.ADMIN:
            raise Forbidden("Access Denied.")

    async def check_admin_or_self(self, current_user, user_id: int):
        if current_user.role != UserRole.ADMIN and current_user.id != user_id:
            raise Forbidden("Access Denied.")
