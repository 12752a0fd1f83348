"""Authorization provider abstraction.

A provider is a ProviderVariant (endpoints, required options, field
authority and a userinfo normalizer) composed with a ProviderConfig read
from the provider configuration file. AuthorizationProvider binds both to
a redirect URI and drives the authorization-code grant through authlib.
No network I/O happens until exchange_code() is called.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, NamedTuple, Optional, Tuple

import httpx
from authlib.common.errors import AuthlibBaseError
from authlib.common.security import generate_token
from authlib.integrations.httpx_client import AsyncOAuth2Client
from authlib.oauth2.rfc6749 import OAuth2Token
from authlib.oauth2.rfc6749.parameters import prepare_grant_uri

from oauth2_login.core.auth.errors import IdentityProviderError
from oauth2_login.domain.models import (
    CanonicalIdentity,
    FieldAuthority,
    FieldAuthorityMap,
    IdentityField,
    LocalUser,
)

logger = logging.getLogger(__name__)

# Options every provider accepts in addition to its required options
OPTIONAL_OPTIONS = ("signInButtonLabel", "scopes")

STATE_LENGTH = 48


class Endpoints(NamedTuple):
    """OAuth2 endpoints of a provider"""
    authorize_url: str
    token_url: str
    userinfo_url: str


def configured_endpoints(options: Mapping[str, str]) -> Endpoints:
    """Endpoints taken verbatim from the provider configuration"""
    return Endpoints(
        authorize_url=options.get("urlAuthorize", ""),
        token_url=options.get("urlAccessToken", ""),
        userinfo_url=options.get("urlResourceOwnerDetails", ""),
    )


def fixed_endpoints(authorize_url: str, token_url: str, userinfo_url: str) -> Callable[[Mapping[str, str]], Endpoints]:
    """Endpoints hardcoded by the provider, independent of configuration"""
    endpoints = Endpoints(authorize_url, token_url, userinfo_url)
    return lambda options: endpoints


@dataclass(frozen=True)
class ProviderVariant:
    """Static description of one supported authorization provider.

    Attributes:
        name: Registry key, also the prefix of its configuration options
        display_name: Human-readable name
        required_options: Configuration options that must be present
        field_authority: Authority level of each canonical identity field
        normalize: Maps the raw userinfo payload onto a CanonicalIdentity
        endpoints: Builds the endpoints from the configuration options
        scopes: Default scopes requested with the authorization URL
    """
    name: str
    display_name: str
    required_options: Tuple[str, ...]
    field_authority: FieldAuthorityMap
    normalize: Callable[[Dict[str, Any]], CanonicalIdentity]
    endpoints: Callable[[Mapping[str, str]], Endpoints] = configured_endpoints
    scopes: Tuple[str, ...] = ()


@dataclass(frozen=True)
class ProviderConfig:
    """Configuration of a provider as read from the configuration file"""
    name: str
    options: Dict[str, str]
    scopes: Tuple[str, ...] = field(default_factory=tuple)

    @property
    def sign_in_button_label(self) -> str:
        return self.options.get("signInButtonLabel") or self.name


class AuthorizationProvider:
    """A configured provider bound to a redirect URI for one login attempt.

    Example:
        provider = registry.make("Google", settings.redirect_uri)
        url = provider.get_authorization_url()
        session_state = provider.get_state()
        ...
        token = await provider.exchange_code(code)
        identity = await provider.fetch_identity(token)
    """

    def __init__(
        self,
        variant: ProviderVariant,
        config: ProviderConfig,
        redirect_uri: str,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize provider.

        Args:
            variant: Static provider description
            config: Complete provider configuration
            redirect_uri: Callback URL registered at the provider
            timeout: Timeout for token and userinfo requests (seconds)
            transport: Optional httpx transport (used for testing)
        """
        self.variant = variant
        self.config = config
        self.redirect_uri = redirect_uri
        self.endpoints = variant.endpoints(config.options)
        self.scopes: Tuple[str, ...] = config.scopes or variant.scopes
        self._timeout = timeout
        self._transport = transport
        self._state: Optional[str] = None

    @property
    def name(self) -> str:
        return self.variant.name

    @property
    def sign_in_button_label(self) -> str:
        return self.config.sign_in_button_label

    def get_required_options(self) -> Tuple[str, ...]:
        return self.variant.required_options

    def get_field_authority(self) -> FieldAuthorityMap:
        return dict(self.variant.field_authority)

    def primary_field(self) -> Optional[IdentityField]:
        """Return the identity field used to look up local accounts"""
        for identity_field in (IdentityField.USER_NAME, IdentityField.EMAIL):
            if self.variant.field_authority.get(identity_field) == FieldAuthority.PRIMARY:
                return identity_field
        return None

    def validate(self) -> str:
        """Validate the field authority of the provider.

        Returns:
            Validation error; empty string if the provider is usable
        """
        levels = list(self.variant.field_authority.values())
        primary_count = levels.count(FieldAuthority.PRIMARY)

        if primary_count == 0:
            return "Cannot use the login data of the authorization provider. No primary key defined for the user data."
        if primary_count > 1:
            return "Cannot use the login data of the authorization provider. More than one primary key defined for the user data."
        if self.primary_field() is None:
            return "Cannot use the login data of the authorization provider. Neither username nor email is a primary key."
        return ""

    def get_authorization_url(self) -> str:
        """Build the consent URL and generate a fresh state for it."""
        self._state = generate_token(STATE_LENGTH)
        return prepare_grant_uri(
            self.endpoints.authorize_url,
            self.config.options["clientId"],
            "code",
            redirect_uri=self.redirect_uri,
            scope=list(self.scopes) or None,
            state=self._state,
        )

    def get_state(self) -> Optional[str]:
        """State generated by the most recent get_authorization_url() call"""
        return self._state

    def _client(self, token: Optional[OAuth2Token] = None) -> AsyncOAuth2Client:
        return AsyncOAuth2Client(
            client_id=self.config.options["clientId"],
            client_secret=self.config.options.get("clientSecret"),
            token_endpoint_auth_method="client_secret_post",
            redirect_uri=self.redirect_uri,
            token=token,
            timeout=self._timeout,
            transport=self._transport,
        )

    async def exchange_code(self, code: str) -> OAuth2Token:
        """Exchange an authorization code for an access token.

        Raises:
            IdentityProviderError: If the provider rejects the code or is unreachable
        """
        try:
            async with self._client() as client:
                token = await client.fetch_token(self.endpoints.token_url, code=code)
        except httpx.HTTPStatusError as e:
            logger.warning(f"Token exchange with {self.name} failed: {e.response.text}")
            raise IdentityProviderError(f"{e.response.status_code} {e.response.text}".strip()) from e
        except (AuthlibBaseError, httpx.HTTPError, ValueError) as e:
            logger.warning(f"Token exchange with {self.name} failed: {e}")
            raise IdentityProviderError(str(e)) from e

        if not token.get("access_token"):
            raise IdentityProviderError(f"No access token in response of {self.name}")

        # Some providers (e.g. Instagram) omit the token type
        token.setdefault("token_type", "Bearer")
        return token

    async def fetch_identity(self, token: OAuth2Token) -> CanonicalIdentity:
        """Retrieve the resource owner and normalize it.

        Raises:
            IdentityProviderError: If the userinfo request fails or returns unusable data
        """
        try:
            async with self._client(token=token) as client:
                response = await client.get(
                    self.endpoints.userinfo_url,
                    headers={"Accept": "application/json"},
                )
        except (AuthlibBaseError, httpx.HTTPError) as e:
            logger.warning(f"Userinfo request to {self.name} failed: {e}")
            raise IdentityProviderError(str(e)) from e

        if response.status_code != 200:
            logger.error(f"Userinfo request to {self.name} failed: {response.text}")
            raise IdentityProviderError(f"{response.status_code} {response.text}".strip())

        try:
            user_data = response.json()
        except ValueError as e:
            raise IdentityProviderError(f"Invalid user data received: {response.text}") from e

        if not isinstance(user_data, dict):
            raise IdentityProviderError(f"Invalid user data received: {response.text}")

        return self.variant.normalize(user_data)

    async def update_local_user(self, users, user: LocalUser, identity: CanonicalIdentity) -> List[IdentityField]:
        """Overwrite the mandatory fields of a local user that differ from the identity.

        Primary fields are lookup keys and are never overwritten here.

        Args:
            users: User repository that persists the change
            user: Local user to update
            identity: Identity received from the provider

        Returns:
            The fields that were updated
        """
        setters = {
            IdentityField.USER_NAME: users.set_user_name,
            IdentityField.REAL_NAME: users.set_real_name,
            IdentityField.EMAIL: users.set_email,
        }

        updated = []
        for identity_field, level in self.variant.field_authority.items():
            if level != FieldAuthority.MANDATORY:
                continue
            new_value = identity.value_of(identity_field)
            if user.value_of(identity_field) != new_value:
                await setters[identity_field](user, new_value)
                updated.append(identity_field)

        if updated:
            logger.info(f"Updated {[f.value for f in updated]} of user {user.user_id} from {self.name}")
        return updated
