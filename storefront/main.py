# storefront/main.py
import asyncio
import logging
from contextlib import asynccontextmanager, suppress
from typing import Optional

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

load_dotenv()

from storefront.config import Settings
from storefront.database import Database
from storefront.exceptions import AuthenticationError, StorefrontError
from storefront.services.lifecycle_service import run_tracking_advancer

# Routers
from storefront.routes.auth import router as auth_router
from storefront.routes.admin import router as admin_router
from storefront.routes.logs import router as logs_router
from storefront.routes.cart import router as cart_router
from storefront.routes.orders import router as orders_router
from storefront.routes.products import router as products_router

logger = logging.getLogger(__name__)


def _error(status_code: int, message: str, headers: Optional[dict] = None) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"message": message}, headers=headers)


def register_exception_handlers(app: FastAPI):
    @app.exception_handler(StorefrontError)
    async def storefront_error_handler(request: Request, exc: StorefrontError):
        headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, AuthenticationError) else None
        return _error(exc.status_code, exc.message, headers)

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        return _error(exc.status_code, str(exc.detail), getattr(exc, "headers", None))

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        parts = []
        for err in exc.errors():
            loc = ".".join(str(p) for p in err.get("loc", ()) if p != "body")
            parts.append(f"{loc}: {err.get('msg')}" if loc else str(err.get("msg")))
        return _error(400, "; ".join(parts) or "Invalid request")

    @app.exception_handler(SQLAlchemyError)
    async def database_error_handler(request: Request, exc: SQLAlchemyError):
        # Details stay in the server log
        logger.exception("Unhandled database error on %s %s", request.method, request.url.path)
        return _error(500, "Internal server error")


def create_app(settings: Optional[Settings] = None, database: Optional[Database] = None) -> FastAPI:
    settings = settings or Settings()
    database = database or Database.from_settings(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        database.init_db()
        tracker = None
        if settings.TRACKING_ADVANCE_SECONDS > 0:
            tracker = asyncio.create_task(run_tracking_advancer(database, settings.TRACKING_ADVANCE_SECONDS))
        try:
            yield
        finally:
            if tracker is not None:
                tracker.cancel()
                with suppress(asyncio.CancelledError):
                    await tracker
            database.dispose()

    app = FastAPI(title="Storefront API", version="1.0.0", lifespan=lifespan)
    app.state.settings = settings
    app.state.db = database

    # CORS Configuration
    origins = ["http://localhost:5173", "http://127.0.0.1:5173"]
    if settings.FRONTEND_URL:
        origins.append(settings.FRONTEND_URL)

    # Credentials are needed for the refresh cookie, so origins are explicit
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    # Router registration
    app.include_router(auth_router)
    app.include_router(admin_router)
    app.include_router(logs_router)
    app.include_router(cart_router)
    app.include_router(orders_router)
    app.include_router(products_router)

    @app.get("/health")
    def health():
        try:
            ok = database.ping()
        except SQLAlchemyError:
            logger.exception("Health check could not reach the database")
            ok = False
        return {"status": "ok" if ok else "degraded", "db": ok}

    return app


app = create_app()
