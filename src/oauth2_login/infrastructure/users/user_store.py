"""User Storage System

Purpose: Look up and update the local accounts OAuth2 identities are matched against

This module provides the local user repository used by the login flow.
Accounts are matched by user name or email (case-insensitive) and updated
field by field. The login flow never creates or deletes accounts;
create_user exists for seeding and administration.

Storage Schema:
- oauth2:user:{user_id} -> {user_json}
- oauth2:user_name:{user_name} -> {user_id}
- oauth2:email:{email} -> {user_id}
"""

import json
import logging
import uuid
from datetime import datetime, timezone
from typing import Dict, Optional, Protocol

from redis.asyncio import Redis

from oauth2_login.domain.models import LocalUser

logger = logging.getLogger(__name__)


class UserRepository(Protocol):
    """Local accounts as seen by the login flow"""

    async def find_by_identifier(self, identifier: str) -> Optional[LocalUser]:
        ...

    async def set_user_name(self, user: LocalUser, user_name: str) -> None:
        ...

    async def set_email(self, user: LocalUser, email: str) -> None:
        ...

    async def set_real_name(self, user: LocalUser, real_name: str) -> None:
        ...

    async def set_preference(self, user: LocalUser, name: str, value: str) -> None:
        ...


class RedisUserRepository:
    """Redis-backed local user repository

    Redis Storage Schema:
    - oauth2:user:{user_id} -> {user_data}
    - oauth2:user_name:{user_name} -> {user_id}
    - oauth2:email:{email} -> {user_id}
    """

    def __init__(self, redis_client: Redis):
        """Initialize user store

        Args:
            redis_client: Redis connection for user storage
        """
        self.redis = redis_client

        # Redis key patterns
        self.user_key_pattern = "oauth2:user:{}"
        self.user_name_key_pattern = "oauth2:user_name:{}"
        self.email_key_pattern = "oauth2:email:{}"

    async def get_user(self, user_id: str) -> Optional[LocalUser]:
        """Get user by ID

        Returns:
            LocalUser if found, None otherwise
        """
        if not user_id:
            return None

        user_data = await self.redis.get(self.user_key_pattern.format(user_id))
        if not user_data:
            return None

        try:
            return LocalUser.from_dict(json.loads(user_data))
        except (ValueError, KeyError) as e:
            logger.error(f"Corrupt user record {user_id}: {e}")
            return None

    async def find_by_identifier(self, identifier: str) -> Optional[LocalUser]:
        """Find a user by user name or email address

        Args:
            identifier: User name or email (case-insensitive)

        Returns:
            LocalUser if found, None otherwise
        """
        if not identifier:
            return None

        key = identifier.lower()
        user_id = await self.redis.get(self.user_name_key_pattern.format(key))
        if not user_id:
            user_id = await self.redis.get(self.email_key_pattern.format(key))
        if not user_id:
            return None

        return await self.get_user(user_id)

    async def create_user(
        self,
        user_name: str,
        email: str,
        real_name: str = "",
        preferences: Optional[Dict[str, str]] = None,
    ) -> LocalUser:
        """Create a local user

        Raises:
            ValueError: If user name or email already exists
        """
        user_name = user_name.strip()
        email = email.strip()
        if not user_name:
            raise ValueError("User name must not be empty")

        if await self.find_by_identifier(user_name):
            raise ValueError(f"User name '{user_name}' already exists")
        if email and await self.find_by_identifier(email):
            raise ValueError(f"Email '{email}' already exists")

        user = LocalUser(
            user_id=str(uuid.uuid4()),
            user_name=user_name,
            real_name=real_name or user_name,
            email=email,
            created_at=datetime.now(timezone.utc),
            preferences=dict(preferences or {}),
        )

        await self._save(user)
        await self.redis.set(self.user_name_key_pattern.format(user_name.lower()), user.user_id)
        if email:
            await self.redis.set(self.email_key_pattern.format(email.lower()), user.user_id)

        logger.info(f"Created user {user.user_id} with user name '{user_name}'")
        return user

    async def set_user_name(self, user: LocalUser, user_name: str) -> None:
        """Rename a user, moving the user name index

        Raises:
            ValueError: If the user name belongs to another user
        """
        await self._check_owner(self.user_name_key_pattern, user_name, user, "User name")

        old_key = self.user_name_key_pattern.format(user.user_name.lower())
        user.user_name = user_name

        await self._save(user)
        await self.redis.delete(old_key)
        if user_name:
            await self.redis.set(self.user_name_key_pattern.format(user_name.lower()), user.user_id)

        logger.info(f"Updated user name of user {user.user_id}")

    async def set_email(self, user: LocalUser, email: str) -> None:
        """Change the email of a user, moving the email index

        Raises:
            ValueError: If the email belongs to another user
        """
        await self._check_owner(self.email_key_pattern, email, user, "Email")

        old_email = user.email
        user.email = email

        await self._save(user)
        if old_email:
            await self.redis.delete(self.email_key_pattern.format(old_email.lower()))
        if email:
            await self.redis.set(self.email_key_pattern.format(email.lower()), user.user_id)

        logger.info(f"Updated email of user {user.user_id}")

    async def set_real_name(self, user: LocalUser, real_name: str) -> None:
        user.real_name = real_name
        await self._save(user)

    async def set_preference(self, user: LocalUser, name: str, value: str) -> None:
        user.preferences[name] = value
        await self._save(user)

    async def _check_owner(self, key_pattern: str, value: str, user: LocalUser, label: str) -> None:
        if not value:
            return
        owner_id = await self.redis.get(key_pattern.format(value.lower()))
        if owner_id and owner_id != user.user_id:
            raise ValueError(f"{label} '{value}' already exists")

    async def _save(self, user: LocalUser) -> None:
        await self.redis.set(self.user_key_pattern.format(user.user_id), json.dumps(user.to_dict()))
