from fastapi import APIRouter, Depends, Request
from fastapi_utils.cbv import cbv
from sqlalchemy.ext.asyncio import AsyncSession

from deal_app.core.cookies import TokenCookie
from deal_app.core.get_db import get_db_async
from deal_app.core.mapper import ORMMapper
from deal_app.core.responses import envelope
from deal_app.core.safe_handler import safe_handler
from deal_app.core.settings import Settings, app_settings
from deal_app.core.throttling import rate_limit
from deal_app.schemas.schema import AuthOut, SignInSchema, SignUpSchema, UserOut
from deal_app.services.auth_service import AuthService

router = APIRouter(tags=["User Authentication"])
mapper = ORMMapper()


@cbv(router)
class AuthRoutes:
    @router.post("/sign-up", status_code=201, dependencies=[rate_limit])
    @safe_handler
    async def sign_up(
        self,
        request: Request,
        data: SignUpSchema,
        db: AsyncSession = Depends(get_db_async),
        settings: Settings = Depends(app_settings),
    ):
        user, token = await AuthService(db, settings).sign_up(data)
        response = envelope(
            "User created successfully!",
            AuthOut(user=mapper.one(user, UserOut), token=token),
            status_code=201,
        )
        TokenCookie(settings).set(response, token)
        return response

    @router.post("/sign-in", dependencies=[rate_limit])
    @safe_handler
    async def sign_in(
        self,
        request: Request,
        data: SignInSchema,
        db: AsyncSession = Depends(get_db_async),
        settings: Settings = Depends(app_settings),
    ):
        user, token = await AuthService(db, settings).sign_in(data)
        response = envelope(
            "User signed in successfully!",
            AuthOut(user=mapper.one(user, UserOut), token=token),
        )
        TokenCookie(settings).set(response, token)
        return response

    @router.post("/sign-out", dependencies=[rate_limit])
    @safe_handler
    async def sign_out(
        self,
        request: Request,
        settings: Settings = Depends(app_settings),
    ):
        response = envelope("User signed out successfully!")
        TokenCookie(settings).clear(response)
        return response
