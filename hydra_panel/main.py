import logging
import traceback
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, RedirectResponse
from starlette.middleware.sessions import SessionMiddleware

from hydra_panel.api import instances
from hydra_panel.api import startup
from hydra_panel.core.config import Settings, get_settings
from hydra_panel.core.database import create_database
from hydra_panel.core.errors import AuthenticationRequired, InternalError, PanelError
from hydra_panel.core.logging import setup_logging
from hydra_panel.domain.ports import AuditLog, Authorizer, KeyValueStore, NodeAgent

from hydra_panel.repositories.audit_repository import SQLAuditLog
from hydra_panel.repositories.image_repository import KVImageRepository
from hydra_panel.repositories.instance_repository import InstanceRepository
from hydra_panel.repositories.kv_repository import SQLKeyValueStore

from hydra_panel.services.agent_client import HttpNodeAgent
from hydra_panel.services.authorization import KVAuthorizer
from hydra_panel.services.instance_service import InstanceService

logger = logging.getLogger(__name__)


def create_app(
    settings: Settings | None = None,
    *,
    store: KeyValueStore | None = None,
    agent: NodeAgent | None = None,
    authorizer: Authorizer | None = None,
    audit: AuditLog | None = None,
) -> FastAPI:
    """Composition root.

    Collaborators not passed in are built from settings; the database is only
    opened when the store or the audit log needs it.
    """
    settings = settings or get_settings()
    setup_logging(settings)

    database = None
    if store is None or audit is None:
        database = create_database(settings)

    store = store or SQLKeyValueStore(database)
    audit = audit or SQLAuditLog(database)
    agent = agent or HttpNodeAgent(default_timeout=settings.REINSTALL_TIMEOUT)
    authorizer = authorizer or KVAuthorizer(store)

    instance_service = InstanceService(
        InstanceRepository(store),
        KVImageRepository(store),
        agent,
        authorizer,
        audit,
        settings,
    )

    # ---------- Startup / Shutdown ----------
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if database is not None:
            await database.connect()
            logger.info("[STARTUP] Database connected")
        yield
        await agent.close()
        if database is not None:
            await database.disconnect()
            logger.info("[SHUTDOWN] Database disconnected")

    app = FastAPI(title="HydraPanel – Instance Control Plane", lifespan=lifespan)
    app.state.settings = settings
    app.state.instance_service = instance_service

    app.add_middleware(SessionMiddleware, secret_key=settings.SESSION_SECRET)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(instances.router)
    app.include_router(startup.router)

    @app.exception_handler(AuthenticationRequired)
    async def authentication_required_handler(request: Request, exc: AuthenticationRequired):
        return RedirectResponse("/", status_code=302)

    @app.exception_handler(PanelError)
    async def panel_error_handler(request: Request, exc: PanelError):
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        return JSONResponse(status_code=exc.status_code, content=exc.to_response().model_dump())

    @app.exception_handler(Exception)
    async def unexpected_error_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        error = InternalError(
            str(exc) or "Internal server error",
            details=traceback.format_exc() if settings.DEBUG else None,
        )
        return JSONResponse(status_code=error.status_code, content=error.to_response().model_dump())

    @app.get("/healthz", tags=["health"])
    async def healthz():
        return {"status": "ok"}

    return app


def run() -> None:
    import uvicorn

    uvicorn.run("hydra_panel.main:create_app", factory=True, host="0.0.0.0", port=8000)
