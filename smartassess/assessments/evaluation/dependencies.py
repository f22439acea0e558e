"""
Wiring and FastAPI dependencies for the evaluation engine.
"""

from dataclasses import dataclass
from typing import Optional

from fastapi import Header, HTTPException, Request, status

from smartassess.common.logger import app_logger
from smartassess.config import Settings
from smartassess.domain.assessments import MemoryTestRepository, TestRepository
from smartassess.domain.questions import MemoryQuestionRepository, QuestionRepository
from smartassess.domain.submissions import MemorySubmissionRepository, SubmissionRepository
from .ai_scorer import AIScorerAdapter
from .analytics import AnalyticsAggregator
from .composer import TestComposer
from .grading import GradingEngine
from .lifecycle import SubmissionLifecycle

logger = app_logger.getChild("assessments.dependencies")


@dataclass
class EvaluationComponents:
    """Repositories and services shared by the request handlers."""
    questions: QuestionRepository
    tests: TestRepository
    submissions: SubmissionRepository
    scorer: AIScorerAdapter
    composer: TestComposer
    lifecycle: SubmissionLifecycle
    grading: GradingEngine
    analytics: AnalyticsAggregator

    async def close(self) -> None:
        await self.scorer.close()


def build_components(questions: QuestionRepository,
                     tests: TestRepository,
                     submissions: SubmissionRepository,
                     scorer: AIScorerAdapter) -> EvaluationComponents:
    """Assemble the services on top of the given repositories."""
    return EvaluationComponents(
        questions=questions,
        tests=tests,
        submissions=submissions,
        scorer=scorer,
        composer=TestComposer(questions),
        lifecycle=SubmissionLifecycle(tests, questions, submissions),
        grading=GradingEngine(tests, questions, submissions, scorer),
        analytics=AnalyticsAggregator(tests, questions, submissions)
    )


def build_memory_components(config: Settings, scorer: Optional[AIScorerAdapter] = None) -> EvaluationComponents:
    """Components backed by in-memory repositories."""
    logger.info("Using in-memory repositories")
    return build_components(
        MemoryQuestionRepository(),
        MemoryTestRepository(),
        MemorySubmissionRepository(),
        scorer or AIScorerAdapter(config)
    )


def get_components(request: Request) -> EvaluationComponents:
    components = getattr(request.app.state, "components", None)
    if components is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Evaluation engine is not initialized"
        )
    return components


async def get_current_user_id(x_user_id: Optional[str] = Header(None)) -> str:
    """
    Get the caller identity from the ``X-User-Id`` header.

    Raises:
        HTTPException: If the header is missing or blank
    """
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing X-User-Id header"
        )
    return x_user_id.strip()


async def build_sql_components(config: Settings, scorer: Optional[AIScorerAdapter] = None) -> EvaluationComponents:
    """Components backed by the SQL database at ``config.DATABASE_URL``."""
    from smartassess.database import (
        SqlQuestionRepository,
        SqlSubmissionRepository,
        SqlTestRepository,
        get_session_factory,
        initialize_database
    )

    await initialize_database(
        database_url=config.DATABASE_URL,
        echo=config.SQL_ECHO,
        pool_size=config.DB_POOL_SIZE,
        max_overflow=config.DB_MAX_OVERFLOW,
        pool_timeout=config.DB_POOL_TIMEOUT,
        create_tables=True
    )
    session_factory = get_session_factory()
    logger.info("Using SQL repositories")
    return build_components(
        SqlQuestionRepository(session_factory),
        SqlTestRepository(session_factory),
        SqlSubmissionRepository(session_factory),
        scorer or AIScorerAdapter(config)
    )
