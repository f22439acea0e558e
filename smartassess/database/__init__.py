"""
Database Module

This module provides the SQLAlchemy engine setup, table models and SQL
repositories of the SmartAssess backend.
"""

from smartassess.database.base import Base, ModelBase, metadata
from smartassess.database.init_db import (
    initialize_database,
    close_database,
    create_schema,
    get_engine,
    get_session_factory,
    run_migrations
)
from smartassess.database.repositories import (
    SqlQuestionRepository,
    SqlTestRepository,
    SqlSubmissionRepository
)

__all__ = [
    'Base',
    'ModelBase',
    'metadata',
    'initialize_database',
    'close_database',
    'create_schema',
    'get_engine',
    'get_session_factory',
    'run_migrations',
    'SqlQuestionRepository',
    'SqlTestRepository',
    'SqlSubmissionRepository',
]
