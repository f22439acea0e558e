"""
Evaluation Engine

Test composition, submission lifecycle, manual and AI grading, and
performance analytics.
"""

from smartassess.assessments.evaluation.ai_scorer import AIScorerAdapter, ScoringRequest, ScoringResult
from smartassess.assessments.evaluation.analytics import AnalyticsAggregator, StudentReport, TestAnalytics
from smartassess.assessments.evaluation.composer import CompositionRequest, CompositionResult, TestComposer
from smartassess.assessments.evaluation.grading import GradingEngine, MarkEntry, SubmissionLocks
from smartassess.assessments.evaluation.lifecycle import CreatedSubmission, SubmissionLifecycle, SubmittedAnswer
from smartassess.assessments.evaluation.response_parser import parse_response

__all__ = [
    'AIScorerAdapter',
    'ScoringRequest',
    'ScoringResult',
    'AnalyticsAggregator',
    'StudentReport',
    'TestAnalytics',
    'CompositionRequest',
    'CompositionResult',
    'TestComposer',
    'GradingEngine',
    'MarkEntry',
    'SubmissionLocks',
    'CreatedSubmission',
    'SubmissionLifecycle',
    'SubmittedAnswer',
    'parse_response',
]
