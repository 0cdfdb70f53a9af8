# ==============================================================================
# MIDDLEWARE PACKAGE INITIALIZATION
# ==============================================================================

"""
Middleware Module
=================

FastAPI middleware implementations:
- Request logging with correlation ids
"""

from aiserve.middleware.request_logger import RequestLoggerMiddleware

__all__ = [
    "RequestLoggerMiddleware",
]
