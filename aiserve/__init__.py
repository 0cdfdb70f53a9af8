# ==============================================================================
# AISERVE PACKAGE INITIALIZATION
# ==============================================================================
# FastAPI + Pydantic + SQLAlchemy backend for AI serving
# Architecture: Unit of Work per request, Repository Pattern, Factory Pattern
# ==============================================================================

"""
AI Serving Backend
==================

A FastAPI backend recording model endpoints and predictions, built
around a request-scoped unit of work: every request (or task) gets its
own session and pooled connection, committed or rolled back and then
released exactly once, whatever way the request ends.

Usage:
------
    from aiserve.main import app

    # Run with uvicorn
    uvicorn aiserve.main:app --reload
"""

__version__ = "1.0.0"
__all__ = ["__version__"]
