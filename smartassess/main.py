"""
Main application entry point for the SmartAssess service.

This module builds the FastAPI application: it wires the evaluation
engine on startup, registers the API router and the shared exception
handlers.

Usage:
    - Direct: python -m smartassess.main
    - ASGI server: uvicorn smartassess.main:app
"""

import os
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from smartassess.api import register_exception_handlers
from smartassess.assessments.evaluation.dependencies import (
    EvaluationComponents,
    build_memory_components,
    build_sql_components
)
from smartassess.assessments.evaluation.router import router as evaluation_router
from smartassess.common.logger import app_logger, configure_logger
from smartassess.config import Settings, settings as default_settings

logger = app_logger.getChild("main")


def create_app(config: Optional[Settings] = None,
               components: Optional[EvaluationComponents] = None) -> FastAPI:
    """
    Create and configure a FastAPI application instance.

    Args:
        config: Settings to use, defaults to the environment settings
        components: Prebuilt engine components; built on startup when omitted

    Returns:
        Configured FastAPI application
    """
    config = config or default_settings
    configure_logger(level=config.LOG_LEVEL, use_json=config.LOG_JSON, log_file=config.LOG_FILE or None)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Application startup sequence initiated.")
        owns_components = components is None
        if owns_components:
            if config.STORAGE_BACKEND == "sql":
                app.state.components = await build_sql_components(config)
            else:
                app.state.components = build_memory_components(config)
        else:
            app.state.components = components
        logger.info("Application startup sequence complete.")

        yield

        logger.info("Application shutdown sequence initiated.")
        if owns_components:
            await app.state.components.close()
            if config.STORAGE_BACKEND == "sql":
                from smartassess.database import close_database
                await close_database()
        logger.info("Application shutdown sequence complete.")

    app = FastAPI(
        title=config.PROJECT_NAME,
        description="Test composition, grading and analytics for SmartAssess",
        version="0.1.0",
        lifespan=lifespan
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.ALLOW_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(evaluation_router, prefix=config.API_V1_STR)
    register_exception_handlers(app)

    logger.info(f"Application created with {len(app.routes)} routes")
    return app


app = create_app()

# Entry point for running the application directly
if __name__ == "__main__":
    import uvicorn

    host = os.environ.get("HOST", "0.0.0.0")
    port = int(os.environ.get("PORT", 8000))
    reload_enabled = os.environ.get("RELOAD", "false").lower() == "true"

    logger.info(f"Starting server on {host}:{port} (reload: {reload_enabled})")

    uvicorn.run(
        "smartassess.main:app",
        host=host,
        port=port,
        reload=reload_enabled,
        log_level="info"
    )
