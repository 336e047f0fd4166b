"""
User repository.

Provides async CRUD operations for users held in process memory.
Mutations are serialized with an asyncio lock; state is lost on restart.
"""

import asyncio
import structlog
from typing import Dict, Optional
from uuid import UUID

from api.src.models.auth import UserRecord, utcnow

logger = structlog.get_logger(__name__)


def normalize_email(email: str) -> str:
    return email.strip().lower()


class UserRepository:
    """Repository for user operations."""

    def __init__(self):
        self._users: Dict[UUID, UserRecord] = {}
        self._by_email: Dict[str, UUID] = {}
        self._lock = asyncio.Lock()

    async def create_user(
        self,
        email: str,
        password_hash: str,
        name: Optional[str] = None,
        is_active: bool = True
    ) -> UserRecord:
        """
        Create a new user.

        Args:
            email: Email address (stored lower-cased)
            password_hash: Hashed password
            name: Optional display name
            is_active: Active status

        Returns:
            Created user

        Raises:
            ValueError: If the email already exists
        """
        key = normalize_email(email)

        async with self._lock:
            if key in self._by_email:
                logger.warning("email_already_exists", email=key)
                raise ValueError(f"Email '{key}' already exists")

            user = UserRecord(
                email=key,
                name=name,
                password_hash=password_hash,
                is_active=is_active,
            )
            self._users[user.id] = user
            self._by_email[key] = user.id

        logger.info("user_created", user_id=str(user.id), email=key)
        return user

    async def get_user_by_id(self, user_id: UUID) -> Optional[UserRecord]:
        """
        Get user by ID.

        Args:
            user_id: User ID

        Returns:
            User or None if not found
        """
        user = self._users.get(user_id)
        if not user:
            logger.debug("user_not_found", user_id=str(user_id))
        return user

    async def get_user_by_email(self, email: str) -> Optional[UserRecord]:
        """
        Get user by email, case-insensitively.

        Args:
            email: Email address

        Returns:
            User or None if not found
        """
        user_id = self._by_email.get(normalize_email(email))
        if user_id is None:
            logger.debug("user_not_found", email=email)
            return None
        return self._users.get(user_id)

    async def set_active(self, user_id: UUID, is_active: bool) -> Optional[UserRecord]:
        """Enable or disable a user account."""
        async with self._lock:
            user = self._users.get(user_id)
            if not user:
                return None
            updated = user.model_copy(
                update={"is_active": is_active, "updated_at": utcnow()}
            )
            self._users[user_id] = updated

        logger.info("user_active_changed", user_id=str(user_id), is_active=is_active)
        return updated

    async def count(self) -> int:
        return len(self._users)
