"""
Models Package
==============

Import from here instead of the individual files.

Example:
    from weather_api.models import Role, WeatherReading
"""

from .user import (
    Role,
    PROTECTED_ROLES,
    User,
    RegisterRequest,
    LoginRequest,
    LogoutRequest,
    CreateUserRequest,
    UpdateRoleRequest,
    DateRangeRequest,
)
from .reading import (
    SNAPSHOT_FIELDS,
    WeatherReading,
    PrecipitationUpdateRequest,
    DeleteReadingRequest,
)

__all__ = [
    "Role",
    "PROTECTED_ROLES",
    "User",
    "RegisterRequest",
    "LoginRequest",
    "LogoutRequest",
    "CreateUserRequest",
    "UpdateRoleRequest",
    "DateRangeRequest",
    "SNAPSHOT_FIELDS",
    "WeatherReading",
    "PrecipitationUpdateRequest",
    "DeleteReadingRequest",
]
