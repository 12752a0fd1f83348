"""
Pytest configuration and fixtures for the OAuth2 login tests.

Provides fixtures for:
- In-memory Redis replacement
- Settings
- Provider configuration and a fake identity provider (httpx MockTransport)
- Session store, flash messages, user repository and the login orchestrator
- HTTP client against the ASGI app with dependency overrides
"""

from typing import AsyncGenerator, Dict, Optional

import httpx
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from oauth2_login.api.routes.dependencies import get_provider_registry, get_redis
from oauth2_login.config.settings import Settings, get_settings
from oauth2_login.core.auth import ProviderRegistry
from oauth2_login.core.login.orchestrator import LoginOrchestrator
from oauth2_login.infrastructure.logging.auth_log import AuthenticationLog
from oauth2_login.infrastructure.session.flash import FlashMessages
from oauth2_login.infrastructure.session.store import RedisSessionStore
from oauth2_login.infrastructure.users.user_store import RedisUserRepository
from oauth2_login.main import app

PROVIDER_CONFIG = {
    "Generic_clientId": "generic-client",
    "Generic_clientSecret": "generic-secret",
    "Generic_urlAuthorize": "https://idp.example.org/authorize",
    "Generic_urlAccessToken": "https://idp.example.org/token",
    "Generic_urlResourceOwnerDetails": "https://idp.example.org/userinfo",
    "Joomla_clientId": "joomla-client",
    "Joomla_clientSecret": "joomla-secret",
    "Joomla_urlAuthorize": "https://joomla.example.org/index.php",
    "Google_clientId": "google-client",
    "Google_clientSecret": "google-secret",
    "Google_signInButtonLabel": "Google Account",
    # Incomplete: Facebook needs graphApiVersion
    "Facebook_clientId": "facebook-client",
    "Facebook_clientSecret": "facebook-secret",
}


class FakeRedis:
    """Minimal in-memory stand-in for redis.asyncio.Redis"""

    def __init__(self):
        self.values: Dict[str, str] = {}
        self.hashes: Dict[str, Dict[str, str]] = {}
        self.expirations: Dict[str, int] = {}

    async def get(self, key: str) -> Optional[str]:
        return self.values.get(key)

    async def set(self, key: str, value) -> bool:
        self.values[key] = str(value)
        return True

    async def delete(self, *keys: str) -> int:
        deleted = 0
        for key in keys:
            if self.values.pop(key, None) is not None:
                deleted += 1
            if self.hashes.pop(key, None) is not None:
                deleted += 1
        return deleted

    async def hset(self, name: str, key: str, value) -> int:
        self.hashes.setdefault(name, {})[key] = str(value)
        return 1

    async def hget(self, name: str, key: str) -> Optional[str]:
        return self.hashes.get(name, {}).get(key)

    async def hexists(self, name: str, key: str) -> bool:
        return key in self.hashes.get(name, {})

    async def hdel(self, name: str, *keys: str) -> int:
        fields = self.hashes.get(name, {})
        return sum(1 for key in keys if fields.pop(key, None) is not None)

    async def expire(self, name: str, seconds: int) -> bool:
        self.expirations[name] = seconds
        return True


class StaticConfigSource:
    """Provider configuration held in memory"""

    def __init__(self, values: Dict[str, str]):
        self.values = dict(values)

    def read(self) -> Dict[str, str]:
        return dict(self.values)


class FakeIdentityProvider:
    """Token and userinfo endpoints of an identity provider.

    POST requests are answered as token requests, GET requests as
    userinfo requests, so it serves every configured provider.
    """

    def __init__(self):
        self.token_status = 200
        self.token_payload = {
            "access_token": "access-token-123",
            "token_type": "Bearer",
            "expires_in": 3600,
        }
        self.userinfo_status = 200
        self.userinfo_payload = {
            "id": 42,
            "username": "jdoe",
            "name": "John Doe",
            "email": "john@example.com",
        }
        self.requests = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.method == "POST":
            return httpx.Response(self.token_status, json=self.token_payload)
        return httpx.Response(self.userinfo_status, json=self.userinfo_payload)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def settings():
    """Settings for tests (no .env file)"""
    return Settings(
        _env_file=None,
        base_url="https://app.example.org",
        redirect_route="/OAuth2Client",
        login_url="/login",
        register_url="/register",
        home_url="/",
        session_prefix="oauth2_client_",
        state_ttl_seconds=600,
        enable_registration=True,
        debugging_activated=True,
    )


@pytest.fixture
def fake_idp():
    return FakeIdentityProvider()


@pytest.fixture
def config_source():
    return StaticConfigSource(PROVIDER_CONFIG)


@pytest.fixture
def registry(config_source, fake_idp):
    return ProviderRegistry(config_source, transport=fake_idp.transport)


@pytest.fixture
def session(fake_redis):
    return RedisSessionStore(fake_redis, "session-1", ttl_seconds=3600)


@pytest.fixture
def flash(session):
    return FlashMessages(session)


@pytest.fixture
def users(fake_redis):
    return RedisUserRepository(fake_redis)


@pytest.fixture
def orchestrator(registry, session, flash, users, settings):
    return LoginOrchestrator(
        registry=registry,
        session=session,
        flash=flash,
        users=users,
        auth_log=AuthenticationLog(settings.debugging_activated),
        settings=settings,
    )


@pytest.fixture
def make_registry(fake_idp):
    """Factory for registries over custom configuration or variants"""

    def _make(values: Dict[str, str], variants=None) -> ProviderRegistry:
        return ProviderRegistry(StaticConfigSource(values), variants=variants, transport=fake_idp.transport)

    return _make


@pytest_asyncio.fixture
async def client(settings, fake_redis, registry) -> AsyncGenerator[AsyncClient, None]:
    """Create test HTTP client with settings, Redis and registry overrides."""
    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_redis] = lambda: fake_redis
    app.dependency_overrides[get_provider_registry] = lambda: registry

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://app.example.org") as ac:
        yield ac

    app.dependency_overrides.clear()
