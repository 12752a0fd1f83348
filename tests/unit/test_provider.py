"""Unit tests for AuthorizationProvider

Tests authorization URL/state generation, field-authority validation,
token exchange, userinfo retrieval and local user updates.
Provider endpoints are served by an httpx MockTransport.
"""

from datetime import datetime, timezone
from urllib.parse import parse_qs, urlparse

import pytest

from oauth2_login.core.auth import (
    PROVIDER_VARIANTS,
    AuthorizationProvider,
    IdentityProviderError,
    ProviderConfig,
    ProviderVariant,
)
from oauth2_login.core.auth.providers import normalize_generic
from oauth2_login.domain.models import (
    CanonicalIdentity,
    FieldAuthority,
    IdentityField,
    LocalUser,
)

REDIRECT_URI = "https://app.example.org/OAuth2Client"

P = FieldAuthority.PRIMARY
M = FieldAuthority.MANDATORY
O = FieldAuthority.OPTIONAL
U = FieldAuthority.UNUSED


def make_variant(user_name, real_name, email) -> ProviderVariant:
    return ProviderVariant(
        name="Custom",
        display_name="Custom",
        required_options=("clientId",),
        field_authority={
            IdentityField.USER_NAME: user_name,
            IdentityField.REAL_NAME: real_name,
            IdentityField.EMAIL: email,
        },
        normalize=normalize_generic,
    )


def make_provider(variant: ProviderVariant) -> AuthorizationProvider:
    config = ProviderConfig(
        name=variant.name,
        options={
            "clientId": "client",
            "clientSecret": "secret",
            "urlAuthorize": "https://idp.example.org/authorize",
            "urlAccessToken": "https://idp.example.org/token",
            "urlResourceOwnerDetails": "https://idp.example.org/userinfo",
        },
    )
    return AuthorizationProvider(variant, config, REDIRECT_URI)


@pytest.fixture
def generic_provider(registry):
    return registry.make("Generic", REDIRECT_URI)


@pytest.mark.unit
class TestValidate:
    """Test field-authority validation"""

    @pytest.mark.parametrize("name", sorted(PROVIDER_VARIANTS))
    def test_supported_providers_are_valid(self, name):
        """Every shipped provider has exactly one primary field"""
        assert make_provider(PROVIDER_VARIANTS[name]).validate() == ""

    @pytest.mark.parametrize(
        "authority,valid",
        [
            ((P, O, M), True),
            ((M, O, P), True),
            ((P, U, U), True),
            ((O, O, O), False),  # no primary
            ((P, O, P), False),  # two primaries
            ((O, P, M), False),  # real name cannot be primary
            ((P, P, P), False),
        ],
    )
    def test_valid_iff_single_primary_on_user_name_or_email(self, authority, valid):
        provider = make_provider(make_variant(*authority))
        assert (provider.validate() == "") is valid

    def test_no_primary_message(self):
        provider = make_provider(make_variant(M, O, O))
        assert "No primary key" in provider.validate()

    def test_multiple_primary_message(self):
        provider = make_provider(make_variant(P, O, P))
        assert "More than one primary key" in provider.validate()

    def test_real_name_primary_message(self):
        provider = make_provider(make_variant(O, P, M))
        assert "Neither username nor email" in provider.validate()


@pytest.mark.unit
class TestAuthorizationUrl:
    """Test consent URL and state generation"""

    def test_authorization_url_parameters(self, generic_provider):
        """Happy path: URL carries client id, redirect URI, response type and state"""
        url = generic_provider.get_authorization_url()

        parsed = urlparse(url)
        params = parse_qs(parsed.query)
        assert f"{parsed.scheme}://{parsed.netloc}{parsed.path}" == "https://idp.example.org/authorize"
        assert params["client_id"] == ["generic-client"]
        assert params["response_type"] == ["code"]
        assert params["redirect_uri"] == [REDIRECT_URI]
        assert params["state"] == [generic_provider.get_state()]

    def test_state_is_fresh_per_call(self, generic_provider):
        """Two authorization URLs never share a state"""
        generic_provider.get_authorization_url()
        first = generic_provider.get_state()
        generic_provider.get_authorization_url()
        second = generic_provider.get_state()

        assert first != second
        assert len(first) >= 32

    def test_state_empty_before_authorization_url(self, generic_provider):
        assert generic_provider.get_state() is None

    def test_default_scopes_are_requested(self, registry):
        provider = registry.make("Google", REDIRECT_URI)
        params = parse_qs(urlparse(provider.get_authorization_url()).query)
        assert params["scope"] == ["openid email profile"]

    def test_joomla_uses_authorize_url_for_all_endpoints(self, registry):
        provider = registry.make("Joomla", REDIRECT_URI)
        assert provider.endpoints.token_url == "https://joomla.example.org/index.php"
        assert provider.endpoints.userinfo_url == "https://joomla.example.org/index.php"


@pytest.mark.unit
class TestExchangeCode:
    """Test authorization code exchange"""

    @pytest.mark.asyncio
    async def test_exchange_code_success(self, generic_provider, fake_idp):
        token = await generic_provider.exchange_code("auth-code")

        assert token["access_token"] == "access-token-123"
        request = fake_idp.requests[-1]
        assert request.method == "POST"
        assert str(request.url) == "https://idp.example.org/token"
        body = parse_qs(request.content.decode())
        assert body["code"] == ["auth-code"]
        assert body["grant_type"] == ["authorization_code"]
        assert body["redirect_uri"] == [REDIRECT_URI]
        assert body["client_id"] == ["generic-client"]

    @pytest.mark.asyncio
    async def test_exchange_code_error_response(self, generic_provider, fake_idp):
        """Provider error message is carried in the raised error"""
        fake_idp.token_payload = {
            "error": "bad_verification_code",
            "error_description": "The code passed is incorrect or expired.",
        }

        with pytest.raises(IdentityProviderError, match="The code passed is incorrect or expired."):
            await generic_provider.exchange_code("bad-code")

    @pytest.mark.asyncio
    async def test_exchange_code_server_error(self, generic_provider, fake_idp):
        fake_idp.token_status = 503
        fake_idp.token_payload = {"message": "maintenance"}

        with pytest.raises(IdentityProviderError):
            await generic_provider.exchange_code("auth-code")

    @pytest.mark.asyncio
    async def test_exchange_code_adds_missing_token_type(self, generic_provider, fake_idp):
        fake_idp.token_payload = {"access_token": "abc", "user_id": 7}

        token = await generic_provider.exchange_code("auth-code")

        assert token["token_type"] == "Bearer"


@pytest.mark.unit
class TestFetchIdentity:
    """Test userinfo retrieval"""

    @pytest.mark.asyncio
    async def test_fetch_identity_generic(self, generic_provider, fake_idp):
        token = await generic_provider.exchange_code("auth-code")

        identity = await generic_provider.fetch_identity(token)

        assert identity == CanonicalIdentity(
            external_id="42", user_name="jdoe", real_name="John Doe", email="john@example.com"
        )
        request = fake_idp.requests[-1]
        assert request.method == "GET"
        assert request.headers["Authorization"] == "Bearer access-token-123"

    @pytest.mark.asyncio
    async def test_fetch_identity_http_error(self, generic_provider, fake_idp):
        token = await generic_provider.exchange_code("auth-code")
        fake_idp.userinfo_status = 401
        fake_idp.userinfo_payload = {"error": "invalid_token"}

        with pytest.raises(IdentityProviderError, match="invalid_token"):
            await generic_provider.fetch_identity(token)

    @pytest.mark.asyncio
    async def test_fetch_identity_google_without_id(self, registry, fake_idp):
        """Google payload without subject is rejected"""
        provider = registry.make("Google", REDIRECT_URI)
        token = await provider.exchange_code("auth-code")
        fake_idp.userinfo_payload = {"error": "wrong endpoint"}

        with pytest.raises(IdentityProviderError, match="Invalid user data"):
            await provider.fetch_identity(token)


class RecordingUsers:
    """Records setter calls of the user repository"""

    def __init__(self):
        self.calls = []

    async def set_user_name(self, user, value):
        self.calls.append(("user_name", value))
        user.user_name = value

    async def set_email(self, user, value):
        self.calls.append(("email", value))
        user.email = value

    async def set_real_name(self, user, value):
        self.calls.append(("real_name", value))
        user.real_name = value


@pytest.mark.unit
class TestUpdateLocalUser:
    """Test synchronization of mandatory fields"""

    def make_user(self) -> LocalUser:
        return LocalUser(
            user_id="user-1",
            user_name="olduser",
            real_name="Old Name",
            email="old@example.com",
            created_at=datetime.now(timezone.utc),
        )

    @pytest.mark.asyncio
    async def test_only_mandatory_fields_are_overwritten(self):
        """Generic: user name is mandatory, real name optional, email primary"""
        provider = make_provider(PROVIDER_VARIANTS["Generic"])
        users = RecordingUsers()
        user = self.make_user()
        identity = CanonicalIdentity(user_name="newuser", real_name="New Name", email="new@example.com")

        updated = await provider.update_local_user(users, user, identity)

        assert updated == [IdentityField.USER_NAME]
        assert users.calls == [("user_name", "newuser")]
        assert user.real_name == "Old Name"
        assert user.email == "old@example.com"

    @pytest.mark.asyncio
    async def test_unchanged_mandatory_field_is_not_written(self):
        provider = make_provider(PROVIDER_VARIANTS["Joomla"])
        users = RecordingUsers()
        user = self.make_user()
        identity = CanonicalIdentity(user_name="olduser", real_name="Other", email="old@example.com")

        updated = await provider.update_local_user(users, user, identity)

        assert updated == []
        assert users.calls == []

    @pytest.mark.asyncio
    async def test_update_is_idempotent(self):
        provider = make_provider(PROVIDER_VARIANTS["Joomla"])
        users = RecordingUsers()
        user = self.make_user()
        identity = CanonicalIdentity(user_name="olduser", email="changed@example.com")

        await provider.update_local_user(users, user, identity)
        await provider.update_local_user(users, user, identity)

        assert users.calls == [("email", "changed@example.com")]
