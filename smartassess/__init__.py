"""
SmartAssess Evaluation Engine

Backend for composing tests from a question bank and evaluating student
submissions.

The service features:
1. Test composition by difficulty split from a filtered question bank
2. Auto-grading of objective answers at submission time
3. Manual and AI-assisted grading of subjective answers
4. Per-student and per-test performance analytics
"""

__version__ = "0.1.0"
