#!/usr/bin/env python3
"""
Server runner script.

This script starts the FastAPI server with the appropriate configuration.
"""

import os
import sys

import uvicorn

from smartassess.common.logger import app_logger

logger = app_logger.getChild("scripts.run_server")


def main():
    """Run the SmartAssess server."""
    host = os.getenv("HOST", "0.0.0.0")
    port = int(os.getenv("PORT", 8000))
    reload_enabled = os.getenv("RELOAD", "false").lower() == "true"

    logger.info(f"Starting server on {host}:{port} (reload: {reload_enabled})")
    try:
        uvicorn.run(
            "smartassess.main:app",
            host=host,
            port=port,
            reload=reload_enabled,
            log_level="info"
        )
    except OSError as e:
        logger.error(f"Error starting server: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
