from fastapi import Response

from .settings import Settings


class TokenCookie:
    def __init__(self, settings: Settings):
        self.name = settings.TOKEN_COOKIE_NAME
        self.secure = settings.SECURE_COOKIES
        self.max_age = settings.TOKEN_EXPIRE_DAYS * 86400

    def set(self, response: Response, token: str):
        response.set_cookie(
            key=self.name,
            value=token,
            httponly=True,
            secure=self.secure,
            samesite="strict",
            max_age=self.max_age,
        )

    def clear(self, response: Response):
        response.delete_cookie(
            key=self.name,
            path="/",
            httponly=True,
            secure=self.secure,
            samesite="strict",
        )
