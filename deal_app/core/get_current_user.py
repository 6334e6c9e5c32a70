from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from deal_app.models.models import User
from deal_app.repos.users_repo import UsersRepo

from .errors import Unauthenticated
from .get_db import get_db_async


async def get_current_user(
    request: Request, db: AsyncSession = Depends(get_db_async)
) -> User:
    identity = getattr(request.state, "user", None)
    if identity is None:
        raise Unauthenticated("Authentication required")

    user = await UsersRepo(db).by_id(identity.id)
    if not user:
        raise Unauthenticated("Not Authenticated")

    return user
