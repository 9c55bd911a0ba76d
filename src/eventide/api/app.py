"""Eventide API — FastAPI application factory.

The app factory creates a FastAPI instance with:
- CORS middleware (configurable origins)
- Lifespan handler for the DB pool, identity client and message feed
- Health endpoint at GET /api/health and the caller identity at GET /api/me
- One router per resource
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware

from eventide import __version__
from eventide.api.deps import (
    get_current_user,
    init_db_manager,
    init_identity_client,
    init_message_feed,
    shutdown_db_manager,
    shutdown_identity_client,
    shutdown_message_feed,
    wire_db_dependencies,
)
from eventide.api.middleware import register_error_handlers
from eventide.api.models import HealthResponse, IdentityOut
from eventide.api.routers.collaborations import router as collaborations_router
from eventide.api.routers.events import router as events_router
from eventide.api.routers.invitations import router as invitations_router
from eventide.api.routers.labels import router as labels_router
from eventide.api.routers.messages import router as messages_router
from eventide.api.routers.notes import notebooks_router
from eventide.api.routers.notes import router as notes_router
from eventide.api.routers.todos import projects_router
from eventide.api.routers.todos import router as todos_router
from eventide.config import EventideConfig, load_config
from eventide.identity import Identity

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle for the DB pool, identity client and feed."""
    config: EventideConfig = app.state.config

    init_identity_client(config.identity)
    init_message_feed()
    try:
        mgr = await init_db_manager(config.database)
        wire_db_dependencies(app)
        logger.info("DatabaseManager initialized for %s", mgr.db_name)
    except Exception:
        logger.warning(
            "Failed to initialize DatabaseManager; DB endpoints will be unavailable",
            exc_info=True,
        )

    yield

    shutdown_message_feed()
    await shutdown_db_manager()
    await shutdown_identity_client()


def create_app(
    config: EventideConfig | None = None,
    cors_origins: list[str] | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Parameters
    ----------
    config:
        Parsed configuration. Loaded with ``load_config()`` when omitted,
        which is what happens when uvicorn calls this as a factory.
    cors_origins:
        Allowed CORS origins. Defaults to ``config.server.cors_origins``.
    """
    if config is None:
        config = load_config()
    if cors_origins is None:
        cors_origins = config.server.cors_origins

    app = FastAPI(
        title="Eventide API",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.config = config
    app.router.redirect_slashes = False

    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_error_handlers(app)

    app.include_router(events_router)
    app.include_router(todos_router)
    app.include_router(projects_router)
    app.include_router(labels_router)
    app.include_router(notebooks_router)
    app.include_router(notes_router)
    app.include_router(collaborations_router)
    app.include_router(invitations_router)
    app.include_router(messages_router)

    @app.get("/api/health", response_model=HealthResponse)
    async def health():
        return {"status": "ok"}

    @app.get("/api/me", response_model=IdentityOut)
    async def me(user: Identity = Depends(get_current_user)):
        return IdentityOut(
            user_id=user.user_id,
            email=user.email,
            display_name=user.display_name,
            avatar_url=user.avatar_url,
        )

    return app
