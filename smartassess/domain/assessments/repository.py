"""
Test Repository Module

Repository interface and in-memory implementation for tests.
"""

import abc
from typing import Dict, List, Optional

from .model import Test


class TestRepository(abc.ABC):
    """Abstract base class for test repositories."""

    __test__ = False  # not a pytest test class

    @abc.abstractmethod
    async def get_by_id(self, test_id: str) -> Optional[Test]:
        """Get a test by its ID, or None."""

    @abc.abstractmethod
    async def save(self, test: Test) -> Test:
        """Create or replace a test."""


class MemoryTestRepository(TestRepository):
    """In-memory implementation of the TestRepository."""

    def __init__(self, initial_data: Optional[List[Test]] = None):
        self._tests: Dict[str, Test] = {}
        for test in initial_data or []:
            self._tests[test.test_id] = test

    async def get_by_id(self, test_id: str) -> Optional[Test]:
        return self._tests.get(test_id)

    async def save(self, test: Test) -> Test:
        self._tests[test.test_id] = test
        return test
