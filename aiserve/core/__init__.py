# ==============================================================================
# CORE PACKAGE INITIALIZATION
# ==============================================================================
# Core utilities: Settings, Security, Exceptions, Logging
# ==============================================================================

"""
Core Module
===========

Contains core utilities and configurations for the application:
- settings: Environment configuration management
- security: JWT bearer tokens
- exceptions: Custom exception classes
- logging_config: Root log handler and request id context
"""

from aiserve.core.settings import settings, get_settings, DatabaseType
from aiserve.core.exceptions import (
    AppException,
    DatabaseError,
    ConnectionError,
    PersistenceError,
    ProgrammingError,
    NotFoundError,
    AlreadyExistsError,
    BadRequestError,
    AuthenticationError,
)

__all__ = [
    "settings",
    "get_settings",
    "DatabaseType",
    "AppException",
    "DatabaseError",
    "ConnectionError",
    "PersistenceError",
    "ProgrammingError",
    "NotFoundError",
    "AlreadyExistsError",
    "BadRequestError",
    "AuthenticationError",
]
