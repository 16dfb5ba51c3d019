import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import select
from starlette.exceptions import HTTPException as StarletteHTTPException

from campus_rewards.api import system
from campus_rewards.api.router import api_router
from campus_rewards.core.config import get_settings
from campus_rewards.core.errors import LedgerError
from campus_rewards.core.security import normalize_wallet_address
from campus_rewards.db.session import get_session_factory
from campus_rewards.models.enums import Role, UserStatus
from campus_rewards.models.user import User
from campus_rewards.services.chain import build_chain_gateway

logger = logging.getLogger(__name__)


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "data": None, "message": message})


def _validation_message(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request data"
    first = errors[0]
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    return f"Invalid request data: {location} {first.get('msg', '')}".strip()


def _ensure_bootstrap_admin(wallet_address: str) -> None:
    address = normalize_wallet_address(wallet_address)
    with get_session_factory()() as db:
        user = db.scalar(select(User).where(User.wallet_address == address))
        if user is None:
            user = User(wallet_address=address)
            db.add(user)
        if user.role != Role.SUPER_ADMIN or user.status != UserStatus.APPROVED:
            user.role = Role.SUPER_ADMIN
            user.status = UserStatus.APPROVED
            logger.info("Bootstrap admin %s ensured.", address)
        db.commit()


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(LedgerError)
    async def ledger_error_handler(request: Request, exc: LedgerError):
        if exc.status_code >= 500:
            logger.error("%s - %s %s - %s", exc.status_code, request.method, request.url.path, exc.message)
        else:
            logger.info("%s - %s %s - %s", exc.status_code, request.method, request.url.path, exc.message)
        return _error(exc.status_code, exc.message)

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        message = exc.detail if isinstance(exc.detail, str) else str(exc.detail)
        return _error(exc.status_code, message)

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        return _error(400, _validation_message(exc))

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception("500 - %s %s", request.method, request.url.path)
        return _error(500, "Internal server error")


def create_app() -> FastAPI:
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if getattr(app.state, "chain_gateway", None) is None:
            app.state.chain_gateway = build_chain_gateway(settings)
        if settings.auto_create_admin and settings.bootstrap_admin_wallet:
            _ensure_bootstrap_admin(settings.bootstrap_admin_wallet)
        yield
        app.state.chain_gateway = None

    app = FastAPI(title=settings.app_name, version=settings.app_version, lifespan=lifespan)
    app.state.chain_gateway = None

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_exception_handlers(app)
    app.include_router(system.router)
    app.include_router(api_router, prefix=settings.api_prefix)

    return app


app = create_app()
