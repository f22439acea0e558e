"""
Domain model of the evaluation engine: question bank, tests and submissions.
"""
