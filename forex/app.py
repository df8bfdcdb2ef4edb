"""
Application Factory
Builds the FastAPI app around one settings object and one document store
"""
import logging
import os
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from forex.api.errors import register_exception_handlers
from forex.api.middleware import register_access_log
from forex.api.responses import envelope
from forex.api.routes import auth, reference, requests, users
from forex.config import Settings, get_settings
from forex.container import Container
from forex.database import MongoStore, connect
from forex.logging_config import configure_logging

logger = logging.getLogger(__name__)


def create_app(settings: Optional[Settings] = None, store=None) -> FastAPI:
    """
    Build the application.

    With no store the lifespan connects to MongoDB; passing a store wires
    the services to it immediately and skips the database connection.
    """
    settings = settings or get_settings()
    configure_logging(settings.LOG_LEVEL)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Starting %s %s", settings.APP_NAME, settings.APP_VERSION)
        client = None
        if store is None:
            client = connect(settings)
            mongo_store = MongoStore(client[settings.MONGODB_DB_NAME])
            await mongo_store.ensure_indexes()
            app.state.container = Container(settings, mongo_store)
            logger.info("Connected to MongoDB: %s", settings.MONGODB_DB_NAME)

        await app.state.container.auth_service.ensure_superadmin()
        logger.info("Server running on %s:%s", settings.HOST, settings.PORT)

        yield

        logger.info("Shutting down")
        if client is not None:
            client.close()

    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        description="Foreign currency request workflow for branch and head-office staff",
        lifespan=lifespan,
        docs_url="/api/docs",
        redoc_url="/api/redoc",
    )
    app.state.settings = settings
    if store is not None:
        app.state.container = Container(settings, store)

    # Configure CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=settings.CORS_ALLOW_CREDENTIALS,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_access_log(app)
    register_exception_handlers(app)

    # Include routers
    app.include_router(auth.router, tags=["Authentication"])
    app.include_router(users.router, tags=["Users and Roles"])
    app.include_router(reference.router, tags=["Reference Data"])
    app.include_router(requests.router, tags=["Forex Requests"])

    # Mount static files (for uploads)
    os.makedirs(settings.UPLOAD_DIR, exist_ok=True)
    app.mount("/uploads", StaticFiles(directory=settings.UPLOAD_DIR), name="uploads")

    @app.get("/health")
    async def health_check():
        """Health check endpoint"""
        return envelope("healthy", {"version": settings.APP_VERSION, "timestamp": datetime.utcnow()})

    return app
