"""FastAPI application for the goal sync service."""
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from goalsync.config import settings
from goalsync.runtime import runtime
from goalsync.routers import goals, mutations, session
from goalsync.utils.log_config import configure_logging


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Connect the backend client on startup, stop reconciliation on shutdown."""
    configure_logging(settings.log_level)
    await runtime.connect()
    yield
    await runtime.disconnect()


def create_app() -> FastAPI:
    """Build the service with session, goal and completion routes."""
    application = FastAPI(
        title="Goal Sync API",
        description="Keeps goal progress in step with task and project completion",
        version="0.1.0",
        lifespan=lifespan,
        debug=settings.debug,
    )
    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    for module in (session, goals, mutations):
        application.include_router(module.router)
    return application


app = create_app()


@app.get("/")
async def root():
    return {"service": "goalsync", "backend": settings.backend_url}


@app.get("/health")
async def health():
    """
    Report whether the runtime is wired and what the reconciler is doing.

    Returns 503 until the backend client is connected.
    """
    if runtime.reconciler is None or runtime.store is None:
        return JSONResponse(status_code=503, content={"status": "starting"})
    return {
        "status": "healthy",
        "authenticated": runtime.session.is_authenticated,
        "reconciler": runtime.reconciler.state.value,
        "goals": len(runtime.store.goals),
        "store": runtime.store.state.value,
    }
