"""
User Models
===========
Pydantic models for user accounts and the auth/user request bodies.

A user document in MongoDB looks like:

    {
        "_id": ObjectId(...),
        "username": "jdoe",
        "email": "jdoe@example.com",
        "password": "$2b$12$...",      # bcrypt hash, never sent back
        "role": "student",
        "auth_token": "3f2c...",        # None when logged out
        "last_login": datetime | None,
        "last_access": datetime | None, # only stamped for students
        "created_at": datetime
    }
"""

import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from bson import ObjectId
from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from weather_api.utils.validation import ObjectIdField

logger = logging.getLogger(__name__)


# =============================================================================
# ENUMS
# =============================================================================

class Role(str, Enum):
    """
    Roles gate which endpoints a token can reach.

    - ADMIN:   reserved, never touched by bulk role updates
    - TEACHER: manages users and weather data
    - STUDENT: reads weather data (access is recorded)
    - STATION: a weather station pushing readings
    """
    ADMIN = "admin"
    TEACHER = "teacher"
    STUDENT = "student"
    STATION = "station"


# Roles that bulk role reassignment must never overwrite
PROTECTED_ROLES = (Role.STATION.value, Role.ADMIN.value)


def utc_now() -> datetime:
    """Current time as naive UTC, the way MongoDB stores it."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


# =============================================================================
# STORED MODEL
# =============================================================================

class User(BaseModel):
    """
    A user account as stored in the `users` collection.

    `auth_token`, `last_login` and `last_access` are explicit optionals:
    None means "logged out" / "never".
    """
    model_config = ConfigDict(arbitrary_types_allowed=True)

    id: ObjectIdField = Field(default_factory=ObjectId)
    username: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = Field(None, description="bcrypt hash")
    role: Optional[str] = None
    auth_token: Optional[str] = None
    last_login: Optional[datetime] = None
    last_access: Optional[datetime] = None
    created_at: Optional[datetime] = None

    @classmethod
    def from_document(cls, document: dict) -> "User":
        """
        Build a User from a raw MongoDB document.

        Patches are written unvalidated, so a stored field can hold any
        type. Fields that fail validation are dropped and read as None.
        """
        data = dict(document)
        data["id"] = data.pop("_id")
        # Older records used `false` for a cleared token
        if not data.get("auth_token"):
            data["auth_token"] = None
        known = {key: value for key, value in data.items() if key in cls.model_fields}
        try:
            return cls(**known)
        except ValidationError as e:
            bad = {error["loc"][0] for error in e.errors() if error.get("loc")}
            logger.warning(f"[Users] Ignoring malformed fields {sorted(bad)} on user {known.get('id')}")
            return cls(**{key: value for key, value in known.items() if key not in bad})

    def to_document(self) -> dict:
        """Convert to the shape stored in MongoDB."""
        document = self.model_dump(exclude={"id"})
        document["_id"] = self.id
        return document

    def public(self) -> dict[str, Any]:
        """Fields that are safe to send to a client (no hash, no token)."""
        return self.model_dump(exclude={"password", "auth_token"})


# =============================================================================
# REQUEST MODELS
# =============================================================================

class _CamelModel(BaseModel):
    """Accepts both camelCase (what the web clients send) and snake_case keys."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class RegisterRequest(_CamelModel):
    """
    Body for POST /auth/register.

    New accounts always get the student role.
    """
    username: str = Field(..., min_length=1)
    email: str = Field(..., min_length=3)
    password: str = Field(..., min_length=1)


class LoginRequest(_CamelModel):
    """Body for POST /auth/login."""
    email: str
    password: str


class LogoutRequest(_CamelModel):
    """Body for POST /auth/logout."""
    auth_token: Optional[str] = None


class CreateUserRequest(_CamelModel):
    """Body for POST /user/create-user (a teacher creating any kind of account)."""
    username: str = Field(..., min_length=1)
    email: str = Field(..., min_length=3)
    password: str = Field(..., min_length=1)
    role: Role


class UpdateRoleRequest(_CamelModel):
    """
    Body for PATCH /user/update-role.

    Every user created within [start_date, end_date] gets new_role,
    except stations and admins.
    """
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    new_role: Optional[Role] = None


class DateRangeRequest(_CamelModel):
    """Body for DELETE /user/delete-students."""
    start_date: Optional[str] = None
    end_date: Optional[str] = None
