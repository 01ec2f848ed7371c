"""
Access Control
==============

FastAPI dependencies that sit in front of the routes.

HOW IT WORKS:
------------
Callers send their session token in the `Auth-Key` header:

    GET /user
    Auth-Key: 3f2c9a1e-...

The token is resolved to a user ONCE per request and cached as an
AuthContext on the request. Two things use it:

1. require_roles("teacher", ...) - the gate.
       no header          -> 400
       unknown token      -> 401
       role not allowed   -> 403

2. record_student_access - NOT a gate. If the caller is a student we stamp
   their last_access time. Anonymous callers and failed stamps never block
   the request.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, Header, HTTPException, Request

from weather_api.models.user import Role, User
from weather_api.services import ReadingCatalog, UserDirectory

logger = logging.getLogger(__name__)

AUTH_HEADER = "Auth-Key"


@dataclass(frozen=True)
class AuthContext:
    """Who is calling. `user` is None for anonymous or unknown tokens."""
    token: Optional[str] = None
    user: Optional[User] = None


# =============================================================================
# SERVICE DEPENDENCIES
# =============================================================================

def get_user_directory(request: Request) -> UserDirectory:
    """The UserDirectory built at startup."""
    directory = getattr(request.app.state, "user_directory", None)
    if directory is None:
        raise HTTPException(status_code=500, detail="Server not fully started yet")
    return directory


def get_reading_catalog(request: Request) -> ReadingCatalog:
    """The ReadingCatalog built at startup."""
    catalog = getattr(request.app.state, "reading_catalog", None)
    if catalog is None:
        raise HTTPException(status_code=500, detail="Server not fully started yet")
    return catalog


# =============================================================================
# TOKEN RESOLUTION
# =============================================================================

async def get_auth_context(
    request: Request,
    auth_key: Optional[str] = Header(None, alias=AUTH_HEADER),
    users: UserDirectory = Depends(get_user_directory),
) -> AuthContext:
    """
    Resolve the Auth-Key header into an AuthContext.

    No header means no lookup. Store errors propagate; callers decide
    whether they matter.
    """
    cached = getattr(request.state, "auth_context", None)
    if cached is not None:
        return cached

    if not auth_key:
        context = AuthContext()
    else:
        context = AuthContext(token=auth_key, user=await users.get_by_token(auth_key))

    request.state.auth_context = context
    return context


def require_roles(*allowed_roles: Role):
    """
    Build a dependency that only lets the given roles through.

    Usage:
        @router.get("/", dependencies=[Depends(require_roles(Role.TEACHER))])
    """
    allowed = {Role(role).value for role in allowed_roles}

    async def gate(
        request: Request,
        auth_key: Optional[str] = Header(None, alias=AUTH_HEADER),
        users: UserDirectory = Depends(get_user_directory),
    ) -> AuthContext:
        if not auth_key:
            raise HTTPException(status_code=400, detail="Authorization token not provided.")

        try:
            context = await get_auth_context(request, auth_key, users)
        except Exception as e:
            logger.exception("[Auth] Token lookup failed")
            raise HTTPException(status_code=500, detail=f"Failed to check authorization token. {e}")

        if context.user is None:
            raise HTTPException(status_code=401, detail="Invalid authorization token.")

        if context.user.role not in allowed:
            logger.info(f"[Auth] {context.user.email} ({context.user.role}) denied, needs one of {sorted(allowed)}")
            raise HTTPException(status_code=403, detail="Access forbidden for this role.")

        return context

    return gate


# =============================================================================
# PASSIVE ACCESS RECORDER
# =============================================================================

async def record_student_access(
    request: Request,
    auth_key: Optional[str] = Header(None, alias=AUTH_HEADER),
    users: UserDirectory = Depends(get_user_directory),
) -> AuthContext:
    """
    Stamp last_access for students. Never rejects a request.
    """
    if not auth_key:
        return AuthContext()

    try:
        context = await get_auth_context(request, auth_key, users)
    except Exception as e:
        logger.error(f"[Auth] Could not resolve token for access recording: {e}")
        return AuthContext(token=auth_key)

    user = context.user
    if user is None or user.role != Role.STUDENT.value:
        return context

    try:
        result = await users.record_access(user)
        if not result.acknowledged:
            logger.error(f"[Auth] Failed to update last access timestamp for {user.id}")
    except Exception as e:
        logger.error(f"[Auth] Failed to update last access timestamp for {user.id}: {e}")

    return context
