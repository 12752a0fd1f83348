#!/usr/bin/env python3
"""Seed local user accounts for development.

Creates verified and approved accounts so OAuth2 identities from a test
provider can sign in without going through registration.

Usage:
    python scripts/seed_users.py alice alice@example.com "Alice Example"
"""

import asyncio
import logging
import sys

from oauth2_login.domain.models import PREF_IS_ACCOUNT_APPROVED, PREF_IS_EMAIL_VERIFIED
from oauth2_login.infrastructure.redis.client import close_redis_client, get_redis_client
from oauth2_login.infrastructure.users.user_store import RedisUserRepository

logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
logger = logging.getLogger(__name__)


async def seed(user_name: str, email: str, real_name: str) -> None:
    redis_client = await get_redis_client()
    try:
        users = RedisUserRepository(redis_client.get_client())
        user = await users.create_user(
            user_name,
            email,
            real_name,
            preferences={PREF_IS_EMAIL_VERIFIED: "1", PREF_IS_ACCOUNT_APPROVED: "1"},
        )
        logger.info(f"Seeded user {user.user_name} <{user.email}> ({user.user_id})")
    finally:
        await close_redis_client()


if __name__ == "__main__":
    if len(sys.argv) < 3:
        print(__doc__)
        sys.exit(1)
    asyncio.run(seed(sys.argv[1], sys.argv[2], sys.argv[3] if len(sys.argv) > 3 else ""))
