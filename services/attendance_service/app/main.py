"""FastAPI application for the Attendance Service."""
from fastapi import FastAPI
from dotenv import load_dotenv

load_dotenv()

from libs.common.logging import configure_logging
from services.attendance_service.router import router as attendance_router


def create_app() -> FastAPI:
    """Create and configure the Attendance Service FastAPI app."""
    configure_logging()

    app = FastAPI(
        title="Attendance Service",
        version="0.1.0",
        description="Attendance ingestion and daily check sheets.",
    )

    @app.get("/health", tags=["system"])
    async def health_check() -> dict[str, str]:
        """Health check endpoint."""
        return {"status": "ok", "service": "attendance"}

    app.include_router(attendance_router, prefix="/attendance")

    return app


app = create_app()
