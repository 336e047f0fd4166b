"""
Refresh token repository.

Tracks issued refresh tokens by ``jti`` so they can be rotated and revoked.
"""

import asyncio
import structlog
from datetime import datetime
from typing import Dict, Optional
from uuid import UUID

from api.src.models.auth import RefreshTokenRecord, utcnow

logger = structlog.get_logger(__name__)


class RefreshTokenRepository:
    """Repository for refresh token state."""

    def __init__(self):
        self._tokens: Dict[str, RefreshTokenRecord] = {}
        self._lock = asyncio.Lock()

    async def add(self, jti: str, user_id: UUID, expires_at: datetime) -> RefreshTokenRecord:
        """
        Record a newly issued refresh token.

        Raises:
            ValueError: If the jti is already known
        """
        record = RefreshTokenRecord(jti=jti, user_id=user_id, expires_at=expires_at)

        async with self._lock:
            if jti in self._tokens:
                raise ValueError(f"Refresh token '{jti}' already recorded")
            self._tokens[jti] = record

        logger.debug("refresh_token_stored", jti=jti, user_id=str(user_id))
        return record

    async def get(self, jti: str) -> Optional[RefreshTokenRecord]:
        return self._tokens.get(jti)

    async def revoke(self, jti: str, replaced_by: Optional[str] = None) -> bool:
        """
        Revoke a refresh token.

        Args:
            jti: Token ID to revoke
            replaced_by: jti of the token issued in its place (rotation)

        Returns:
            True if the token was active and is now revoked, False if it was
            unknown or already revoked
        """
        async with self._lock:
            record = self._tokens.get(jti)
            if record is None or record.is_revoked:
                return False
            self._tokens[jti] = record.model_copy(
                update={"revoked_at": utcnow(), "replaced_by": replaced_by}
            )

        logger.debug("refresh_token_revoked", jti=jti, replaced_by=replaced_by)
        return True

    async def revoke_all_for_user(self, user_id: UUID) -> int:
        """Revoke every active refresh token of a user. Returns the count revoked."""
        now = utcnow()
        revoked = 0

        async with self._lock:
            for jti, record in self._tokens.items():
                if record.user_id == user_id and not record.is_revoked:
                    self._tokens[jti] = record.model_copy(update={"revoked_at": now})
                    revoked += 1

        if revoked:
            logger.info("refresh_tokens_revoked_for_user", user_id=str(user_id), count=revoked)
        return revoked
