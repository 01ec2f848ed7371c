"""
Users API Router
================

User management. Every endpoint here needs a teacher's token in the
`Auth-Key` header.

ENDPOINTS:
---------
GET    /user                    - List all users
GET    /user/{id}               - Get one user
POST   /user/create-user        - Create a user with any role
PATCH  /user/update-user/{id}   - Patch any fields of a user
PATCH  /user/update-role        - Change the role of users created in a date range
DELETE /user/delete-user/{id}   - Delete a user
DELETE /user/delete-students    - Delete students last seen in a date range
"""

import logging
from typing import Any

from fastapi import APIRouter, Body, Depends, HTTPException

from weather_api.models.user import CreateUserRequest, DateRangeRequest, Role, UpdateRoleRequest
from weather_api.routers.access import get_user_directory, require_roles
from weather_api.services import UserDirectory
from weather_api.services.user_directory import DuplicateEmailError
from weather_api.utils.responses import envelope, server_errors
from weather_api.utils.serialization import write_result
from weather_api.utils.validation import parse_datetime, validate_object_id

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/user",
    tags=["users"],
    dependencies=[Depends(require_roles(Role.TEACHER))],
)


def _check_user_id(user_id: str):
    if not validate_object_id(user_id):
        raise HTTPException(
            status_code=400,
            detail="Please provide a valid User ID (insert in ObjectId format)",
        )


def _parse_range(start_date: str, end_date: str):
    try:
        return parse_datetime(start_date), parse_datetime(end_date)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


# =============================================================================
# READ
# =============================================================================

@router.get("")
async def get_all_users(users: UserDirectory = Depends(get_user_directory)):
    """List every user (password hashes and tokens are never included)."""
    with server_errors("Error getting user data."):
        all_users = await users.list_users()

    return envelope(200, "Got all user data", users=[user.public() for user in all_users])


@router.get("/{user_id}")
async def get_user_by_id(user_id: str, users: UserDirectory = Depends(get_user_directory)):
    """Get a single user by id."""
    _check_user_id(user_id)

    with server_errors("Database error finding user."):
        user = await users.get_by_id(user_id)

    if not user:
        raise HTTPException(status_code=404, detail="No user was found with this ID!")
    return envelope(200, "User Found", user_data=user.public())


# =============================================================================
# CREATE / UPDATE
# =============================================================================

@router.post("/create-user")
async def create_user(
    request: CreateUserRequest,
    users: UserDirectory = Depends(get_user_directory),
):
    """
    Create a user with any role.

    Returns 409 if the email is already registered.
    """
    with server_errors("Error creating new user."):
        try:
            user, result = await users.create_user(
                request.username, request.email, request.password, request.role
            )
        except DuplicateEmailError:
            raise HTTPException(
                status_code=409,
                detail="The provided email address is already associated with an account.",
            )

    return envelope(200, "New user created", data=write_result(result), user=user.public())


@router.patch("/update-user/{user_id}")
async def update_user_by_id(
    user_id: str,
    patch: dict[str, Any] = Body(...),
    users: UserDirectory = Depends(get_user_directory),
):
    """
    Patch a user. Any field in the body is written as-is (a `password` is
    hashed first).
    """
    _check_user_id(user_id)

    with server_errors("Failed to update user data."):
        if not await users.get_by_id(user_id):
            raise HTTPException(status_code=404, detail="User not found.")

        result = await users.update_user(user_id, patch)
        updated = await users.get_by_id(user_id)

    return envelope(
        200,
        "User updated successfully.",
        update_user=write_result(result),
        updated_user_data=updated.public() if updated else None,
    )


@router.patch("/update-role")
async def update_role_in_date_range(
    request: UpdateRoleRequest,
    users: UserDirectory = Depends(get_user_directory),
):
    """
    Give every user created between start_date and end_date (inclusive) a
    new role. Stations and admins are left alone.
    """
    if not request.start_date or not request.end_date or not request.new_role:
        raise HTTPException(status_code=400, detail="Please provide valid input data.")

    start, end = _parse_range(request.start_date, request.end_date)

    with server_errors("Failed to update new role."):
        result = await users.update_role_in_range(start, end, request.new_role)

    return envelope(200, "New Role updated successfully.", result=write_result(result))


# =============================================================================
# DELETE
# =============================================================================

@router.delete("/delete-user/{user_id}")
async def delete_user_by_id(user_id: str, users: UserDirectory = Depends(get_user_directory)):
    """Delete a user. Deleting an unknown id reports deleted_count 0."""
    _check_user_id(user_id)

    with server_errors("Failed to delete user account."):
        result = await users.delete_user(user_id)

    return envelope(200, "User account deleted", deleted_user=write_result(result))


@router.delete("/delete-students")
async def delete_students_by_last_login(
    request: DateRangeRequest,
    users: UserDirectory = Depends(get_user_directory),
):
    """Delete every student whose last login is between the two dates (inclusive)."""
    if not request.start_date or not request.end_date:
        raise HTTPException(status_code=400, detail="Start date and end date are required.")

    start, end = _parse_range(request.start_date, request.end_date)

    with server_errors("Failed to delete students by last login date."):
        result = await users.delete_students_by_last_login(start, end)

    return envelope(
        200,
        f"Deleted {result.deleted_count} student(s) who last logged in between "
        f"{request.start_date} and {request.end_date}.",
        deleted_count=result.deleted_count,
    )
