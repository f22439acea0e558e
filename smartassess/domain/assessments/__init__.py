"""
Test domain module.

A test is an ordered list of bank questions with per-test marks.
"""

from .model import Test, TestQuestion, DEFAULT_SECTION
from .repository import TestRepository, MemoryTestRepository

__all__ = [
    'Test',
    'TestQuestion',
    'DEFAULT_SECTION',
    'TestRepository',
    'MemoryTestRepository',
]
