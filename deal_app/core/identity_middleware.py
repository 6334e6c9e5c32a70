from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from deal_app.security.tokens import TokenSigner

from .settings import Settings


class IdentityMiddleware(BaseHTTPMiddleware):
    """Attaches the token identity (or None) to ``request.state.user``.

    Never rejects a request: endpoints that need a caller enforce it through
    the ``get_current_user`` dependency.
    """

    def __init__(self, app, settings: Settings):
        super().__init__(app)
        self.cookie_name = settings.TOKEN_COOKIE_NAME
        self.signer = TokenSigner(settings)

    async def dispatch(self, request: Request, call_next):
        token = request.cookies.get(self.cookie_name)
        request.state.user = self.signer.verify(token) if token else None
        return await call_next(request)
