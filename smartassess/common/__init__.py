"""
Common Components for SmartAssess

Infrastructure shared by the engine modules: logging, the error taxonomy
and the outbound call throttle.
"""

from smartassess.common.logger import app_logger
from smartassess.common.exceptions import ErrorCode, ErrorInfo, SmartAssessError
from smartassess.common.rate_limiter import RateLimiter

__all__ = [
    'app_logger',
    'ErrorCode',
    'ErrorInfo',
    'SmartAssessError',
    'RateLimiter',
]
