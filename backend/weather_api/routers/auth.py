"""
Auth API Router
===============

Register, log in, log out.

ENDPOINTS:
---------
POST /auth/register - Create a student account
POST /auth/login    - Swap email + password for a session token
POST /auth/logout   - Clear a session token

The token returned by /auth/login goes in the `Auth-Key` header of every
protected request. Tokens don't expire; they stay valid until logout.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException

from weather_api.models.user import LoginRequest, LogoutRequest, RegisterRequest
from weather_api.routers.access import get_user_directory
from weather_api.services import UserDirectory
from weather_api.services.user_directory import DuplicateEmailError
from weather_api.utils.responses import envelope, server_errors
from weather_api.utils.serialization import write_result

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/register")
async def register_user(
    request: RegisterRequest,
    users: UserDirectory = Depends(get_user_directory),
):
    """
    Register a new account. Self-registered accounts are always students.

    Returns 409 if the email is already taken.
    """
    with server_errors("Failed to register user."):
        try:
            user = await users.register(request.username, request.email, request.password)
        except DuplicateEmailError:
            raise HTTPException(status_code=409, detail="Email already exists")

    return envelope(200, "User registered successfully", data=user.public())


@router.post("/login")
async def login_user(
    request: LoginRequest,
    users: UserDirectory = Depends(get_user_directory),
):
    """
    Log in with email and password.

    On success a fresh token replaces any previous one and last_login is
    stamped.
    """
    with server_errors("Error in Login User:"):
        user = await users.get_by_email(request.email)
        if not user:
            raise HTTPException(status_code=404, detail="User not found with this email")

        if not users.verify_password(request.password, user.password):
            raise HTTPException(status_code=401, detail="Invalid password")

        token = await users.start_session(user)

    return envelope(200, "Logged in successfully", auth_token=token)


@router.post("/logout")
async def logout_user(
    request: LogoutRequest,
    users: UserDirectory = Depends(get_user_directory),
):
    """Log out: the token in the body is cleared from its user."""
    if not request.auth_token:
        raise HTTPException(status_code=400, detail="Authentication token is required for logout.")

    with server_errors("Failed to logout user."):
        user = await users.get_by_token(request.auth_token)
        if not user:
            raise HTTPException(status_code=404, detail="User not found. Invalid authentication token.")

        result = await users.end_session(user)

    return envelope(200, "User logged out successfully.", updated_user=write_result(result))
