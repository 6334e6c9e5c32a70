import logging

import uvicorn
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from deal_app.core.catch_error_middleware import ErrorHandlerMiddleware
from deal_app.core.exception_handler import HTTPErrorHandler, ValidationErrorHandler
from deal_app.core.get_db import build_engine, build_sessionmaker
from deal_app.core.identity_middleware import IdentityMiddleware
from deal_app.core.lifespan import lifespan
from deal_app.core.settings import Settings, get_settings
from deal_app.routes.auth_routes import router as auth_router
from deal_app.routes.deal_routes import router as deal_router
from deal_app.routes.listing_routes import router as listing_router
from deal_app.routes.users_routes import router as users_router


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()
    logging.basicConfig(level=settings.LOG_LEVEL)

    app = FastAPI(
        lifespan=lifespan,
        title=settings.PROJECT_NAME,
        version="1.0.0",
    )
    app.state.settings = settings
    app.state.engine = build_engine(settings)
    app.state.sessionmaker = build_sessionmaker(app.state.engine)

    app.include_router(auth_router, prefix="/api/auth")
    app.include_router(users_router, prefix="/api")
    app.include_router(listing_router, prefix="/api/deals")
    app.include_router(deal_router, prefix="/api/deals")

    @app.get("/health", tags=["System"])
    async def health_check():
        return {"status": "ok"}

    app.add_exception_handler(RequestValidationError, ValidationErrorHandler())
    app.add_exception_handler(StarletteHTTPException, HTTPErrorHandler())

    app.add_middleware(IdentityMiddleware, settings=settings)
    app.add_middleware(ErrorHandlerMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOWED_HOSTS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    return app


if __name__ == "__main__":
    uvicorn.run(create_app(), host="127.0.0.1", port=8001)
