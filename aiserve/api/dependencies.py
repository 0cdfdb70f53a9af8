# ==============================================================================
# API DEPENDENCIES - Dependency Injection
# ==============================================================================
# FastAPI dependencies for units of work and bearer authentication
# ==============================================================================

from __future__ import annotations

from typing import Annotated, AsyncIterator, Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from aiserve.core.security import verify_access_token
from aiserve.core.exceptions import TokenExpiredError, InvalidTokenError
from aiserve.database.factory import DatabaseFactory
from aiserve.database.unit_of_work import UnitOfWork, UnitOfWorkManager

# Bearer scheme for JWT access tokens; tokens are issued outside this service
bearer_scheme = HTTPBearer(auto_error=False)


# ==============================================================================
# DATABASE DEPENDENCIES
# ==============================================================================

async def get_manager() -> UnitOfWorkManager:
    """Get the process-wide unit of work manager."""
    return DatabaseFactory.get_manager()


ManagerDep = Annotated[UnitOfWorkManager, Depends(get_manager)]


async def get_unit_of_work(manager: ManagerDep) -> AsyncIterator[UnitOfWork]:
    """
    Session-per-request dependency.

    Yields a unit of work that is committed when the request finishes
    normally and rolled back when the handler (or request validation)
    raises. Used by read endpoints; write endpoints call
    ``manager.run(...)`` so commit failures reach the response.
    """
    async with manager.scope() as uow:
        yield uow


UnitOfWorkDep = Annotated[UnitOfWork, Depends(get_unit_of_work)]


# ==============================================================================
# AUTHENTICATION DEPENDENCIES
# ==============================================================================

def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_client_id(
    credentials: Annotated[
        Optional[HTTPAuthorizationCredentials], Depends(bearer_scheme)
    ],
) -> str:
    """
    Extract the client ID from a bearer token.

    Raises:
        HTTPException: 401 if the token is missing, invalid or expired
    """
    if credentials is None or not credentials.credentials:
        raise _unauthorized("Not authenticated")

    try:
        payload = verify_access_token(credentials.credentials)
    except TokenExpiredError:
        raise _unauthorized("Token has expired")
    except InvalidTokenError as e:
        raise _unauthorized(e.message)

    return payload["sub"]


CurrentClientID = Annotated[str, Depends(get_current_client_id)]
