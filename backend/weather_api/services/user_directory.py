"""
User Directory
==============

Everything that reads or writes user accounts.

WHAT IT DOES:
------------
1. Look users up by id, email or session token
2. Create accounts (teacher-created or self-registered students)
3. Start and end sessions (issue / clear the opaque token)
4. Patch a user (upsert!), bulk-change roles, bulk-delete old students

KNOWN LIMITATIONS:
-----------------
- Email uniqueness is a check-then-insert, not a database constraint.
  Two registrations racing with the same email can both get through.
- update_user() upserts: patching an id that doesn't exist creates a new
  document with that id holding only the patched fields.
"""

import logging
import uuid
from datetime import datetime
from typing import Any, Optional, Union

import bcrypt
from bson import ObjectId

from weather_api.models.user import PROTECTED_ROLES, Role, User, utc_now
from weather_api.services.store import WeatherStore
from weather_api.utils.validation import parse_object_id

logger = logging.getLogger(__name__)


class DuplicateEmailError(ValueError):
    """Raised when an account with the same email already exists."""


class UserDirectory:
    """
    CRUD and bulk operations over the `users` collection.
    """

    def __init__(self, store: WeatherStore, bcrypt_rounds: int = 12):
        """
        Args:
            store: The connected weather store
            bcrypt_rounds: Work factor for password hashes (lower it in tests)
        """
        self.store = store
        self.bcrypt_rounds = bcrypt_rounds

    @property
    def collection(self):
        return self.store.users

    # =========================================================================
    # PASSWORDS
    # =========================================================================

    def hash_password(self, password: str) -> str:
        salt = bcrypt.gensalt(rounds=self.bcrypt_rounds)
        return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")

    def verify_password(self, password: str, hashed: Optional[str]) -> bool:
        """Compare a plain password against a stored bcrypt hash."""
        if not hashed:
            return False
        try:
            return bcrypt.checkpw(password.encode("utf-8"), hashed.encode("utf-8"))
        except ValueError:
            # Stored value isn't a bcrypt hash
            logger.warning("[Users] Stored password is not a valid bcrypt hash")
            return False

    # =========================================================================
    # LOOKUPS
    # =========================================================================

    async def list_users(self) -> list[User]:
        documents = await self.collection.find({}).to_list(length=None)
        return [User.from_document(document) for document in documents]

    async def get_by_id(self, user_id: Union[str, ObjectId]) -> Optional[User]:
        """
        Find a user by id.

        Raises:
            ValueError: If user_id isn't a valid ObjectId
        """
        object_id = user_id if isinstance(user_id, ObjectId) else parse_object_id(user_id)
        document = await self.collection.find_one({"_id": object_id})
        return User.from_document(document) if document else None

    async def get_by_email(self, email: str) -> Optional[User]:
        document = await self.collection.find_one({"email": email})
        return User.from_document(document) if document else None

    async def get_by_token(self, token: Optional[str]) -> Optional[User]:
        """Resolve a session token to its user. Empty tokens never match."""
        if not token:
            return None
        document = await self.collection.find_one({"auth_token": token})
        return User.from_document(document) if document else None

    # =========================================================================
    # CREATE
    # =========================================================================

    async def create_user(
        self,
        username: str,
        email: str,
        password: str,
        role: Union[Role, str],
    ) -> tuple[User, Any]:
        """
        Create a new account.

        The email check and the insert are two separate round-trips.

        Returns:
            (the new user, the insert result)

        Raises:
            DuplicateEmailError: If the email is already registered
        """
        if await self.get_by_email(email):
            raise DuplicateEmailError(f"The email address {email} is already associated with an account.")

        user = User(
            username=username,
            email=email,
            password=self.hash_password(password),
            role=Role(role).value,
            auth_token=None,
            last_login=None,
            created_at=utc_now(),
        )
        result = await self.collection.insert_one(user.to_document())
        logger.info(f"[Users] Created {user.role} account {user.id} ({email})")
        return user, result

    async def register(self, username: str, email: str, password: str) -> User:
        """Self-registration: always creates a student."""
        user, _ = await self.create_user(username, email, password, Role.STUDENT)
        return user

    # =========================================================================
    # UPDATE
    # =========================================================================

    async def update_user(self, user_id: Union[str, ObjectId], patch: dict[str, Any]):
        """
        Merge a partial patch into a user with $set and upsert=True.

        The patch isn't validated: any field can be overwritten. A plain
        `password` is hashed first and id keys are ignored.

        Raises:
            ValueError: If user_id isn't a valid ObjectId
        """
        object_id = user_id if isinstance(user_id, ObjectId) else parse_object_id(user_id)
        changes = {key: value for key, value in patch.items() if key not in ("_id", "id")}
        if isinstance(changes.get("password"), str):
            changes["password"] = self.hash_password(changes["password"])

        return await self.collection.update_one(
            {"_id": object_id},
            {"$set": changes},
            upsert=True,
        )

    async def start_session(self, user: User) -> str:
        """Issue a fresh token and stamp the login time."""
        token = str(uuid.uuid4())
        await self.update_user(user.id, {"auth_token": token, "last_login": utc_now()})
        logger.info(f"[Auth] {user.email} logged in")
        return token

    async def end_session(self, user: User):
        """Clear the user's token (logout)."""
        result = await self.update_user(user.id, {"auth_token": None})
        logger.info(f"[Auth] {user.email} logged out")
        return result

    async def record_access(self, user: User):
        """Stamp the time a user last read weather data."""
        return await self.update_user(user.id, {"last_access": utc_now()})

    async def update_role_in_range(self, start: datetime, end: datetime, new_role: Union[Role, str]):
        """
        Give every user created within [start, end] a new role.

        Stations and admins are never changed.
        """
        result = await self.collection.update_many(
            {
                "created_at": {"$gte": start, "$lte": end},
                "role": {"$nin": list(PROTECTED_ROLES)},
            },
            {"$set": {"role": Role(new_role).value}},
        )
        logger.info(
            f"[Users] Role -> {Role(new_role).value} for users created {start} .. {end}: "
            f"{result.modified_count} changed"
        )
        return result

    # =========================================================================
    # DELETE
    # =========================================================================

    async def delete_user(self, user_id: Union[str, ObjectId]):
        """
        Raises:
            ValueError: If user_id isn't a valid ObjectId
        """
        object_id = user_id if isinstance(user_id, ObjectId) else parse_object_id(user_id)
        return await self.collection.delete_one({"_id": object_id})

    async def delete_students_by_last_login(self, start: datetime, end: datetime):
        """Delete every student whose last login falls within [start, end]."""
        result = await self.collection.delete_many({
            "role": Role.STUDENT.value,
            "last_login": {"$gte": start, "$lte": end},
        })
        logger.info(f"[Users] Deleted {result.deleted_count} students last seen {start} .. {end}")
        return result
