"""
Submission domain module.
"""

from .model import Answer, Submission, SubmissionStatus
from .repository import SubmissionRepository, MemorySubmissionRepository

__all__ = [
    'Answer',
    'Submission',
    'SubmissionStatus',
    'SubmissionRepository',
    'MemorySubmissionRepository',
]
