"""FastAPI application entry point and composition root of the import safety services."""

from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI
from fastapi import Request

from catalog_import_safety.config import build_import_config
from catalog_import_safety.data_models.cleanup import CleanupStatus
from catalog_import_safety.data_models.import_config import ImportSafetyConfig
from catalog_import_safety.environment import API_PORT
from catalog_import_safety.environment import ARTIFACT_CLEANUP_AUTOSTART
from catalog_import_safety.environment import DEPLOYMENT_ENV
from catalog_import_safety.environment import LOG_DIR
from catalog_import_safety.environment import PRODUCTION
from catalog_import_safety.garbage_collector import ArtifactCleanupService
from catalog_import_safety.logger import LOGGING_PROVIDER
from catalog_import_safety.version import __version__

logger = LOGGING_PROVIDER.new_logger("catalog_import_safety.endpoints")


def should_autostart_cleanup(deployment_env: str, autostart: bool) -> bool:
    """The cleanup schedule is armed in production, elsewhere only on request."""
    return autostart or deployment_env.strip().lower() == PRODUCTION


def create_app(
    import_config: ImportSafetyConfig | None = None,
    cleanup_service: ArtifactCleanupService | None = None,
    autostart_cleanup: bool | None = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Anything not passed in is built from the process environment when the app starts.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Handle application lifespan events."""
        # Startup
        if LOG_DIR is not None and not LOGGING_PROVIDER.is_initialized:
            LOGGING_PROVIDER.init_logging(Path(LOG_DIR))

        config = import_config if import_config is not None else build_import_config()
        service = cleanup_service if cleanup_service is not None else ArtifactCleanupService.from_import_config(config)
        app.state.import_config = config
        app.state.cleanup_service = service

        autostart = autostart_cleanup
        if autostart is None:
            autostart = should_autostart_cleanup(DEPLOYMENT_ENV, ARTIFACT_CLEANUP_AUTOSTART)

        if autostart:
            service.start_scheduled_cleanup()
            logger.info("Artifact cleanup schedule armed")
        else:
            logger.info(f"Artifact cleanup schedule not armed (deployment: {DEPLOYMENT_ENV})")

        yield

        # Shutdown
        service.stop_scheduled_cleanup()
        logger.info("Artifact cleanup schedule stopped")

    app = FastAPI(
        title="Catalog Import Safety",
        description="Import limits and artifact retention for bulk catalog imports",
        version=__version__,
        lifespan=lifespan,
    )

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Health check endpoint (no auth required)."""
        return {"status": "healthy"}

    @app.get("/api/v1/artifacts/cleanup/status")
    async def cleanup_status(request: Request) -> CleanupStatus:
        """Read-only state of the artifact cleanup service."""
        service: ArtifactCleanupService = request.app.state.cleanup_service
        return service.get_status()

    return app


app = create_app()


def main():
    """Entry point for CLI."""
    import uvicorn

    uvicorn.run("catalog_import_safety.endpoints:app", host="0.0.0.0", port=API_PORT)


if __name__ == "__main__":
    main()
