import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from proasset.config import get_settings
from proasset.context import AppContext
from proasset.db import create_db_and_tables, engine
from proasset.routers import approvals, assets, audit, auth, locations, logs, permissions, system, users
from proasset.schemas import Role, UserStatus
from proasset.services.permissions import PermissionEvaluator, load_permission_overrides
from proasset.services.users import build_user, find_user_by_username

logger = logging.getLogger("proasset")


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def seed_admin(session: Session) -> None:
    settings = get_settings()
    if find_user_by_username(session, settings.admin_username):
        return
    session.add(build_user(
        settings.admin_username,
        settings.admin_password,
        settings.admin_name,
        Role.SUPER_ADMIN,
        UserStatus.active,
    ))
    session.commit()
    logger.info("seeded administrator account %s", settings.admin_username)


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging(get_settings().log_level)
    create_db_and_tables()

    ctx = AppContext(PermissionEvaluator())
    with Session(engine) as session:
        seed_admin(session)
        applied = load_permission_overrides(session, ctx.permissions)
    if applied:
        logger.info("loaded %d stored permission overrides", applied)
    app.state.ctx = ctx

    yield
    logger.info("service stopped")


app = FastAPI(title="ProAsset - Asset Tracking", lifespan=lifespan)

app.include_router(auth.router)
app.include_router(users.router)
app.include_router(permissions.router)
app.include_router(locations.router)
app.include_router(assets.router)
app.include_router(approvals.router)
app.include_router(audit.router)
app.include_router(logs.router)
app.include_router(system.router)


@app.get("/health")
def health():
    return {"ok": True}


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=422,
        content={"code": "VALIDATION_ERROR", "message": "Request validation failed", "errors": jsonable_encoder(exc.errors())},
    )


@app.exception_handler(SQLAlchemyError)
async def store_exception_handler(request: Request, exc: SQLAlchemyError):
    logger.error("store failure on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(
        status_code=503,
        content={"detail": {"code": "STORE_ERROR", "message": "Data store is unavailable"}},
    )
