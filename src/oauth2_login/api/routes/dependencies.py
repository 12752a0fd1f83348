"""FastAPI dependencies shared by the OAuth2 routes."""

import secrets

from fastapi import Depends, Request
from redis.asyncio import Redis

from oauth2_login.config.settings import Settings, get_settings
from oauth2_login.core.auth import ProviderRegistry
from oauth2_login.infrastructure.config.provider_config import IniProviderConfigSource
from oauth2_login.infrastructure.redis.client import get_redis_client
from oauth2_login.infrastructure.session.store import RedisSessionStore


async def get_redis() -> Redis:
    """Get the connected Redis client"""
    redis_client = await get_redis_client()
    return redis_client.get_client()


def get_provider_registry(settings: Settings = Depends(get_settings)) -> ProviderRegistry:
    """Provider registry over the configured provider configuration file"""
    return ProviderRegistry(
        IniProviderConfigSource(settings.provider_config_path),
        timeout=settings.http_timeout_seconds,
    )


def get_session_id(request: Request, settings: Settings = Depends(get_settings)) -> str:
    """Session id from the session cookie; a new one if the browser has none"""
    return request.cookies.get(settings.session_cookie_name) or secrets.token_urlsafe(32)


def get_session(
    session_id: str = Depends(get_session_id),
    redis: Redis = Depends(get_redis),
    settings: Settings = Depends(get_settings),
) -> RedisSessionStore:
    return RedisSessionStore(redis, session_id, settings.session_ttl_seconds)
