from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from queuedesk.api.routes import admin, auth, employees, metrics, ping, statistics, tickets
from queuedesk.core.config import Settings, get_settings
from queuedesk.core.logging import configure_logging, init_tracer, shutdown_tracer
from queuedesk.db.store import DispatchStore, InMemoryDispatchStore, PersistenceError, SqlDispatchStore
from queuedesk.dependencies.auth import TokenRegistry
from queuedesk.dispatch.service import QueueDeskService


def build_store(settings: Settings) -> DispatchStore:
    if not settings.persistence_enabled:
        return InMemoryDispatchStore()
    return SqlDispatchStore.from_url(settings.database_url, future=True)


async def build_service(settings: Settings, store: DispatchStore) -> QueueDeskService:
    """Load the state, then bootstrap the first administrator and today's statistics."""

    if isinstance(store, SqlDispatchStore):
        await store.ensure_schema()
    state = await store.load()
    service = QueueDeskService(
        state,
        store,
        zone=settings.report_zone,
        require_open_station=settings.require_open_station,
        code_width=settings.ticket_code_width,
    )
    await service.bootstrap_administrator(
        settings.bootstrap_admin_id,
        settings.bootstrap_admin_password,
        settings.bootstrap_admin_name,
    )
    service.seed_statistics()
    return service


@asynccontextmanager
async def lifespan(app: FastAPI):  # pragma: no cover - executed by framework
    settings = get_settings()
    logger = configure_logging(settings)
    tracer_provider = init_tracer(settings)

    app.state.logger = logger
    app.state.tracer_provider = tracer_provider
    app.state.token_registry = TokenRegistry()
    app.state.queue_service = None
    store = build_store(settings)
    try:
        app.state.queue_service = await build_service(settings, store)
    except PersistenceError:
        logger.exception("Dispatch state could not be loaded; serving without it")
    try:
        yield
    finally:
        if isinstance(store, SqlDispatchStore):
            await store.dispose()
        shutdown_tracer(tracer_provider)


async def persistence_error_handler(request: Request, exc: PersistenceError) -> JSONResponse:
    return JSONResponse(status_code=503, content={"detail": "Change applied but not durably stored"})


def create_app() -> FastAPI:
    settings = get_settings()
    app = FastAPI(title=settings.app_name, lifespan=lifespan)
    app.add_exception_handler(PersistenceError, persistence_error_handler)
    app.include_router(ping.router)
    app.include_router(auth.router)
    app.include_router(tickets.router)
    app.include_router(employees.router)
    app.include_router(admin.router)
    app.include_router(statistics.router)
    app.include_router(metrics.router)
    return app


app = create_app()
