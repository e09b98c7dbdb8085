"""FastAPI application factory."""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from ..config import settings
from ..sync import SyncService
from .routes import router

# Global service instance
_service: Optional[SyncService] = None


def get_service() -> SyncService:
    """Get the global sync service instance."""
    global _service
    if _service is None:
        _service = SyncService()
    return _service


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifecycle."""
    service = get_service()
    await service.initialize()
    yield
    await service.shutdown()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="SheetSync",
        description="Brokerage data to Google Sheets with user-editable column headers",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(router, prefix="/api")

    return app
