"""FastAPI application for the Performance Service."""
from fastapi import FastAPI
from dotenv import load_dotenv

load_dotenv()

from libs.common.logging import configure_logging
from services.performance_service.router import router as performance_router


def create_app() -> FastAPI:
    """Create and configure the Performance Service FastAPI app."""
    configure_logging()

    app = FastAPI(
        title="Performance Service",
        version="0.1.0",
        description="Performance ledger, bulk headcounts and statistics.",
    )

    @app.get("/health", tags=["system"])
    async def health_check() -> dict[str, str]:
        """Health check endpoint."""
        return {"status": "ok", "service": "performance"}

    app.include_router(performance_router, prefix="/performance")

    return app


app = create_app()
