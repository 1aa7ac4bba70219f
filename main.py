"""
Main application entry point for the Contacts API.

This module builds the FastAPI application: it configures logging and
CORS, installs the envelope exception handlers, serves locally stored
photos and includes the authentication and contacts routers.

Modules:
- FastAPI: Web framework
- CORSMiddleware: Middleware for handling CORS
- StaticFiles: Serves photos of the local storage backend
- contactbook.database: Database engine
- contactbook.models: SQLAlchemy models
- contactbook.auth: Authentication router
- contactbook.contacts: Contacts router
- contactbook.responses: Envelope exception handlers
- contactbook.core: Application settings
"""

from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from contactbook import contacts, models
from contactbook.auth import router as auth_router
from contactbook.core import configure_logging, get_settings
from contactbook.database import engine
from contactbook.responses import envelope, register_exception_handlers

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create tables on startup (for development only)."""
    models.Base.metadata.create_all(bind=engine)
    yield


def create_app() -> FastAPI:
    """Build and configure the FastAPI application."""
    configure_logging(settings)

    app = FastAPI(title="Contacts API", lifespan=lifespan)

    # Configure CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    if settings.STORAGE_BACKEND.lower() == "local":
        root = Path(settings.STORAGE_ROOT)
        root.mkdir(parents=True, exist_ok=True)
        app.mount("/storage", StaticFiles(directory=root), name="storage")

    # Include routers for application areas
    app.include_router(auth_router)
    app.include_router(contacts.router)

    @app.get("/")
    def root():
        """
        Root endpoint for the API.

        Returns a simple JSON message directing users to the Swagger UI.
        """
        return envelope(message="Contacts API. Visit /docs for Swagger UI")

    return app


app = create_app()
