#!/usr/bin/env python3
"""
Scorer connectivity check.

Sends a greeting to the configured chat completions endpoint and exits
non-zero when it does not answer.
"""

import asyncio
import sys

from smartassess.assessments.evaluation.ai_scorer import AIScorerAdapter
from smartassess.common.logger import app_logger
from smartassess.config import settings

logger = app_logger.getChild("scripts.check_scorer")


async def check() -> bool:
    scorer = AIScorerAdapter(settings)
    try:
        return await scorer.check_connection()
    finally:
        await scorer.close()


def main():
    logger.info(f"Checking scorer {settings.SCORER_MODEL} at {settings.SCORER_API_URL}")
    if not asyncio.run(check()):
        logger.error("Scorer is not reachable. Make sure the model server is running and a model is loaded.")
        sys.exit(1)
    logger.info("Scorer is reachable")


if __name__ == "__main__":
    main()
