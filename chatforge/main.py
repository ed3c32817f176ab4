import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from chatforge.core.config import settings
from chatforge.core.errors import register_exception_handlers
from chatforge.core.logging_config import configure_logging
from chatforge.core.page_gate import page_gate
from chatforge.db.sessions import Database
from chatforge.routes import auth, chat, projects, sources

logger = logging.getLogger(__name__)


def create_app(database: Optional[Database] = None) -> FastAPI:
    """
    Build the API application.

    The database handle is created at startup unless one is passed in, and is
    disposed at shutdown either way.
    """
    configure_logging(settings.LOG_LEVEL)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        db = database or Database(settings.DATABASE_URL, echo=settings.DATABASE_ECHO)
        db.create_all()
        app.state.db = db
        logger.info("%s v%s starting", settings.APP_NAME, settings.APP_VERSION)
        try:
            yield
        finally:
            db.dispose()
            logger.info("%s stopped", settings.APP_NAME)

    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        description="Create configurable AI assistants and chat with them over your own documents",
        debug=settings.DEBUG,
        lifespan=lifespan,
    )

    # CORS configuration
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.middleware("http")(page_gate)

    register_exception_handlers(app)

    # Register routers
    app.include_router(auth.router)
    app.include_router(projects.router)
    app.include_router(sources.router)
    app.include_router(chat.router)

    @app.get("/health")
    def health():
        return {"status": "ok"}

    return app


app = create_app()
