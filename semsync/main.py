"""Main entry point for the SemSync API server."""

import logging
from pathlib import Path
from typing import Optional

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from .api.deps import FILES_URL_PREFIX
from .api.routes import functions_router, groups_router, health_router, personal_router
from .config import config, Config
from .database.models import init_db
from .utils.error_handlers import register_error_handlers
from .utils.logging_config import setup_logging

logger = logging.getLogger(__name__)


def create_app(blob_dir: Optional[str] = None) -> FastAPI:
    """Build the FastAPI application."""
    app = FastAPI(
        title="SemSync API",
        version="1.0.0",
        description="Timetable extraction and student workspace backend.",
    )

    # Callables are invoked straight from the browser
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_error_handlers(app)

    blob_root = Path(blob_dir or config.BLOB_STORAGE_DIR)
    blob_root.mkdir(parents=True, exist_ok=True)
    app.mount(FILES_URL_PREFIX, StaticFiles(directory=str(blob_root)), name="files")

    app.include_router(health_router)
    app.include_router(functions_router)
    app.include_router(personal_router)
    app.include_router(groups_router)
    return app


def main() -> None:
    """Initialize storage and run the API server."""
    setup_logging(log_level=config.LOG_LEVEL, log_to_file=True)

    # Extraction needs the Gemini key; the other routes work without it
    missing = Config.validate()
    if missing:
        logger.warning(f"Missing configuration: {', '.join(missing)}")
        logger.warning("Timetable extraction will fail until your .env file is complete")

    # Initialize database
    logger.info(f"Initializing database at {config.DATABASE_PATH}")
    init_db(config.DATABASE_PATH)

    logger.info(f"Starting SemSync API on {config.HOST}:{config.PORT}")
    uvicorn.run(
        "semsync.main:create_app",
        factory=True,
        host=config.HOST,
        port=config.PORT,
        log_config=None,
    )


if __name__ == "__main__":
    main()
