# ==============================================================================
# API PACKAGE INITIALIZATION
# ==============================================================================

"""
API Module
==========

FastAPI routers and dependency injection.
"""
