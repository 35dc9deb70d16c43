# clinic_booking/main.py
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from clinic_booking import __version__
from clinic_booking.api.exception_handlers import register_exception_handlers
from clinic_booking.api.router import api_router
from clinic_booking.core.config import settings
from clinic_booking.db.session import Database

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


def create_app(database: Optional[Database] = None) -> FastAPI:
    """
    Build the API. The store is opened in the lifespan and disposed at
    shutdown; tests pass their own (already created) Database.
    """
    db = database or Database(settings.SQLALCHEMY_DATABASE_URI)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        app.state.db = db.open()
        logger.info("Store opened (%s)", db.engine.url.render_as_string(hide_password=True))
        try:
            yield
        finally:
            db.close()
            logger.info("Store closed")

    app = FastAPI(
        title=settings.PROJECT_NAME,
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.BACKEND_CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)
    app.include_router(api_router, prefix=settings.API_V1_STR)

    # Health
    @app.get("/")
    def root():
        return {"message": f"{settings.PROJECT_NAME} running", "version": __version__}

    return app


app = create_app()
