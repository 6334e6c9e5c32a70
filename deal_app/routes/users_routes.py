from fastapi import APIRouter, Depends, Request
from fastapi_utils.cbv import cbv
from sqlalchemy.ext.asyncio import AsyncSession

from deal_app.core.get_current_user import get_current_user
from deal_app.core.get_db import get_db_async
from deal_app.core.mapper import ORMMapper
from deal_app.core.responses import envelope
from deal_app.core.safe_handler import safe_handler
from deal_app.core.settings import Settings, app_settings
from deal_app.core.throttling import rate_limit
from deal_app.models.models import User
from deal_app.schemas.schema import UserOut, UserUpdateSchema
from deal_app.services.users_service import UsersService

router = APIRouter(tags=["Users"])
mapper = ORMMapper()


@cbv(router)
class UsersRoutes:
    @router.get("/users", dependencies=[rate_limit])
    @safe_handler
    async def get_all(
        self,
        request: Request,
        db: AsyncSession = Depends(get_db_async),
        current_user: User = Depends(get_current_user),
        settings: Settings = Depends(app_settings),
    ):
        users = await UsersService(db, settings).get_all_users(current_user)
        return envelope(
            "Users retrieved successfully!",
            mapper.many(users, UserOut),
            count=len(users),
        )

    @router.get("/users/{user_id:int}", dependencies=[rate_limit])
    @safe_handler
    async def get(
        self,
        request: Request,
        user_id: int,
        db: AsyncSession = Depends(get_db_async),
        current_user: User = Depends(get_current_user),
        settings: Settings = Depends(app_settings),
    ):
        user = await UsersService(db, settings).get_user(user_id, current_user)
        return envelope("User retrieved successfully!", mapper.one(user, UserOut))

    @router.put("/users/{user_id:int}", dependencies=[rate_limit])
    @safe_handler
    async def update(
        self,
        request: Request,
        user_id: int,
        data: UserUpdateSchema,
        db: AsyncSession = Depends(get_db_async),
        current_user: User = Depends(get_current_user),
        settings: Settings = Depends(app_settings),
    ):
        user = await UsersService(db, settings).update_user(user_id, data, current_user)
        return envelope("User updated successfully!", mapper.one(user, UserOut))

    @router.delete("/users/{user_id:int}", dependencies=[rate_limit])
    @safe_handler
    async def delete(
        self,
        request: Request,
        user_id: int,
        db: AsyncSession = Depends(get_db_async),
        current_user: User = Depends(get_current_user),
        settings: Settings = Depends(app_settings),
    ):
        await UsersService(db, settings).delete_user(user_id, current_user)
        return envelope("User deleted successfully!")
