"""
Pack Curator Application - FastAPI приложение поверх сервиса анализа сборки.

При старте выполняется полный проход анализа и пишется отчет; дальше API
работает с графом в памяти.
"""
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from .curator import PackCurator, init_pack_curator
from .curator_config import CuratorSettings
from .toggle_engine import ArchiveRenamer

logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifecycle manager - startup and shutdown logic."""
    logger.info("🚀 Starting pack curator...")
    curator: PackCurator = app.state.curator
    await curator.generate_report()
    logger.info(f"✅ Report generated: {curator.settings.report_file}")
    yield
    logger.info("🛑 Pack curator stopped")


def create_app(settings: Optional[CuratorSettings] = None, renamer: Optional[ArchiveRenamer] = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Returns:
        Configured FastAPI application
    """
    logger.info("🏗️ Creating FastAPI application...")
    app = FastAPI(
        title="Pack Curator",
        version="1.0.0",
        description="Dependency graph and cascading toggles for a mod pack",
        lifespan=lifespan,
        docs_url="/api/docs",
        openapi_url="/api/openapi.json",
    )
    app.state.curator = init_pack_curator(settings, renamer)

    @app.get("/health")
    async def health():
        """Health check endpoint."""
        curator: PackCurator = app.state.curator
        return {
            "status": "healthy" if curator.graph is not None else "starting",
            "packages": len(curator.graph) if curator.graph is not None else 0,
            "diagnostics": len(curator.collector),
        }

    from .routes import packages

    app.include_router(packages.router, prefix=API_PREFIX, tags=["packages"])
    logger.info("✅ FastAPI application created successfully")
    return app
