"""OAuth2 login flow.

LoginOrchestrator drives one HTTP request through the authorization-code
flow and always ends in a redirect:

    provider_name given -> remember provider and target URL in the session
    no code             -> redirect to the provider's consent page (state stored)
    code + state        -> verify state, exchange code, fetch identity,
                           then log in the matching local user or redirect
                           to registration with the identity pre-filled

Every failure is a LoginFlowError caught in handle() and turned into a
flash message plus a redirect to the login page. Nothing is retried.
"""

import hmac
import json
import logging
import time
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Dict, Optional
from urllib.parse import urlencode

from authlib.oauth2.rfc6749 import OAuth2Token

from oauth2_login.config.settings import Settings
from oauth2_login.core.auth.errors import (
    ConfigurationError,
    IdentityDataError,
    IdentityProviderError,
    LocalLoginError,
    LoginFlowError,
    ProtocolError,
)
from oauth2_login.core.auth.factory import ProviderRegistry
from oauth2_login.core.auth.provider import AuthorizationProvider
from oauth2_login.domain.models import (
    PREF_IS_ACCOUNT_APPROVED,
    PREF_IS_EMAIL_VERIFIED,
    PREF_LANGUAGE,
    PREF_LOGIN_WITH_OAUTH2_PROVIDER,
    PREF_PROVIDER_NAME,
    PREF_THEME,
    PREF_TIMESTAMP_ACTIVE,
    CanonicalIdentity,
    LocalUser,
    LoginAttempt,
    display_label,
)
from oauth2_login.infrastructure.logging.auth_log import AuthenticationLog
from oauth2_login.infrastructure.session.flash import DANGER, INFO, FlashMessages
from oauth2_login.infrastructure.session.store import SessionStore
from oauth2_login.infrastructure.users.user_store import UserRepository

logger = logging.getLogger(__name__)

# Session keys of the login attempt (stored with the module prefix)
SESSION_PROVIDER_NAME = "provider_name"
SESSION_URL = "url"
SESSION_STATE = "oauth2state"
SESSION_STATE_ISSUED_AT = "oauth2state_issued_at"
SESSION_REGISTRATION = "registration"

# Session keys shared with the host application (no prefix)
SESSION_USER_ID = "user_id"
SESSION_LANGUAGE = "language"
SESSION_THEME = "theme"

MSG_PROVIDER_NOT_FOUND = "The requested authorization provider could not be found"
MSG_INVALID_STATE = "Invalid state in communication with authorization provider."
MSG_PROVIDER_FAILURE = "Failed to get the access token or the user details from the authorization provider"
MSG_NO_ACCOUNT_DATA = "No valid user account data received from authorization provider. Username or email missing."
MSG_NO_COOKIES = "You cannot sign in because your browser does not accept cookies."
MSG_NO_SUCH_USER = "The username or password is incorrect."
MSG_NOT_VERIFIED = "This account has not been verified. Please check your email for a verification message."
MSG_NOT_APPROVED = "This account has not been approved. Please wait for an administrator to approve it."
MSG_REGISTRATION_COMMENT = "Automatic user registration after sign in with authorization provider"


@dataclass
class LoginRequest:
    """Inputs of one request to the login endpoint"""
    code: str = ""
    state: str = ""
    provider_name: str = ""
    url: str = ""
    has_cookies: bool = True


class LoginResultKind(Enum):
    REDIRECT = "redirect"
    NOT_FOUND = "not_found"


@dataclass
class LoginResult:
    """Outcome of a request: where to redirect the browser"""
    kind: LoginResultKind
    location: str = ""
    user: Optional[LocalUser] = None

    @classmethod
    def redirect(cls, location: str, user: Optional[LocalUser] = None) -> 'LoginResult':
        return cls(LoginResultKind.REDIRECT, location, user)

    @classmethod
    def not_found(cls) -> 'LoginResult':
        return cls(LoginResultKind.NOT_FOUND)


@dataclass
class ResizedIdentity:
    """Identity data cut to the field lengths of the local user store"""
    user_name: str
    real_name: str
    email: str
    password: str
    identity: CanonicalIdentity


class LoginOrchestrator:
    """Request handler for login with an authorization provider"""

    def __init__(
        self,
        registry: ProviderRegistry,
        session: SessionStore,
        flash: FlashMessages,
        users: UserRepository,
        auth_log: AuthenticationLog,
        settings: Settings,
    ):
        self.registry = registry
        self.session = session
        self.flash = flash
        self.users = users
        self.auth_log = auth_log
        self.settings = settings

    async def handle(self, request: LoginRequest) -> LoginResult:
        """Process one request of the login flow.

        Args:
            request: Query parameters and cookie presence of the request

        Returns:
            LoginResult with the redirect target, or NOT_FOUND if
            registration would be required but is disabled
        """
        attempt = await self._load_attempt(request)

        try:
            provider = self._make_provider(attempt.provider_name)

            if not request.code:
                return await self._redirect_to_provider(provider, attempt)

            await self._verify_state(request.state)

            token = await provider.exchange_code(request.code)
            identity = await provider.fetch_identity(token)
            self.auth_log.add_debug_log(
                f"Identity received from {provider.name}: user_name={identity.user_name!r}, email={identity.email!r}"
            )

            return await self._resolve_account(provider, attempt, token, identity, request.has_cookies)

        except IdentityProviderError as e:
            logger.info(f"Login attempt failed ({e.kind.value}): {e.message}")
            await self.flash.add_message(f"{MSG_PROVIDER_FAILURE}: {e.message}", DANGER)
            return self._redirect_to_login(attempt.target_url)

        except LoginFlowError as e:
            logger.info(f"Login attempt failed ({e.kind.value}): {e.message}")
            await self.flash.add_message(e.message, DANGER)
            return self._redirect_to_login(attempt.target_url)

    async def _load_attempt(self, request: LoginRequest) -> LoginAttempt:
        """Start a new attempt or recover the running one from the session"""
        if request.provider_name:
            attempt = LoginAttempt(
                provider_name=request.provider_name,
                target_url=self._local_url(request.url),
            )
            await self.session.put(self._key(SESSION_PROVIDER_NAME), attempt.provider_name)
            await self.session.put(self._key(SESSION_URL), attempt.target_url)
            return attempt

        return LoginAttempt(
            provider_name=await self.session.get(self._key(SESSION_PROVIDER_NAME), "") or "",
            target_url=await self.session.get(self._key(SESSION_URL), self.settings.home_url) or self.settings.home_url,
        )

    def _make_provider(self, provider_name: str) -> AuthorizationProvider:
        provider = self.registry.make(provider_name, self.settings.redirect_uri)
        if provider is None:
            raise ConfigurationError(f"{MSG_PROVIDER_NOT_FOUND}: {provider_name}")

        validation_result = provider.validate()
        if validation_result:
            raise ConfigurationError(validation_result)

        return provider

    async def _redirect_to_provider(self, provider: AuthorizationProvider, attempt: LoginAttempt) -> LoginResult:
        authorization_url = provider.get_authorization_url()
        attempt.issue_state(provider.get_state())

        await self.session.put(self._key(SESSION_STATE), attempt.state)
        await self.session.put(self._key(SESSION_STATE_ISSUED_AT), attempt.issued_at.isoformat())

        self.auth_log.add_debug_log(f"Redirecting to authorization provider {provider.name}")
        return LoginResult.redirect(authorization_url)

    async def _verify_state(self, state: str) -> None:
        """Check the returned state against the stored one; the stored state is consumed either way.

        Raises:
            ProtocolError: If the state is missing, mismatched or expired
        """
        has_stored = await self.session.has(self._key(SESSION_STATE))
        stored_state = await self.session.get(self._key(SESSION_STATE), "") or ""
        issued_at = await self.session.get(self._key(SESSION_STATE_ISSUED_AT), "") or ""

        await self.session.forget(self._key(SESSION_STATE))
        await self.session.forget(self._key(SESSION_STATE_ISSUED_AT))

        if (
            state == ""
            or not has_stored
            or not hmac.compare_digest(state.encode("utf-8"), stored_state.encode("utf-8"))
        ):
            self.auth_log.add_debug_log("Invalid state received from authorization provider")
            raise ProtocolError(MSG_INVALID_STATE)

        attempt = LoginAttempt(
            state=stored_state,
            issued_at=datetime.fromisoformat(issued_at) if issued_at else None,
        )
        if attempt.is_state_expired(self.settings.state_ttl_seconds):
            self.auth_log.add_debug_log("Expired state received from authorization provider")
            raise ProtocolError(MSG_INVALID_STATE)

    async def _resolve_account(
        self,
        provider: AuthorizationProvider,
        attempt: LoginAttempt,
        token: OAuth2Token,
        identity: CanonicalIdentity,
        has_cookies: bool,
    ) -> LoginResult:
        resized = await self._resize_identity(identity, token)

        primary_field = provider.primary_field()
        identifier = getattr(resized, primary_field.value) if primary_field else ""
        if not identifier:
            raise IdentityDataError(MSG_NO_ACCOUNT_DATA)

        if await self.users.find_by_identifier(identifier) is None:
            return await self._redirect_to_registration(provider, resized)

        try:
            user = await self._do_login(identifier, attempt.provider_name, has_cookies)
            await provider.update_local_user(self.users, user, resized.identity)
        except LocalLoginError:
            raise
        except Exception as ex:
            logger.warning(f"Login of {identifier} failed: {ex}")
            await self.session.forget(SESSION_USER_ID)
            raise LocalLoginError(str(ex), reason="exception") from ex

        return LoginResult.redirect(attempt.target_url, user)

    async def _resize_identity(self, identity: CanonicalIdentity, token: OAuth2Token) -> ResizedIdentity:
        user_name = await self._resize("Username", identity.user_name, self.settings.max_user_name_length)
        real_name = await self._resize("Real name", identity.real_name, self.settings.max_text_length)
        email = await self._resize("Email address", identity.email, self.settings.max_text_length)
        password = await self._resize(
            "Password", token.get("access_token", ""), self.settings.max_password_length, add_flash_message=False
        )

        return ResizedIdentity(
            user_name=user_name,
            real_name=real_name,
            email=email,
            password=password,
            identity=CanonicalIdentity(
                external_id=identity.external_id,
                user_name=user_name,
                real_name=real_name,
                email=email,
            ),
        )

    async def _resize(self, name: str, value: str, length: int, add_flash_message: bool = True) -> str:
        """Cut a value to the maximum length allowed in the user store"""
        if len(value) <= length:
            return value

        if add_flash_message:
            await self.flash.add_message(
                f'The length of the "{name}" exceeded the maximum length of {length} '
                f'and was reduced to {length} characters.',
                INFO,
            )
        return value[:length]

    async def _redirect_to_registration(self, provider: AuthorizationProvider, resized: ResizedIdentity) -> LoginResult:
        if not self.settings.enable_registration:
            self.auth_log.add_debug_log(f"Registration disabled, no account for {provider.name} identity")
            return LoginResult.not_found()

        self.auth_log.add_debug_log(f"No local account for {provider.name} identity, redirecting to registration")
        params: Dict[str, str] = {
            "email": resized.email,
            "realname": resized.real_name,
            "username": resized.user_name,
            "provider_name": provider.name,
            "comments": MSG_REGISTRATION_COMMENT,
        }
        # The access token never appears in a URL
        await self.session.put(
            self._key(SESSION_REGISTRATION), json.dumps(dict(params, password=resized.password))
        )
        return LoginResult.redirect(f"{self.settings.register_url}?{urlencode(params)}")

    async def _do_login(self, identifier: str, provider_name: str, has_cookies: bool) -> LocalUser:
        """Log in the local user, if we can.

        Raises:
            LocalLoginError: If cookies are missing or the account cannot sign in
        """
        if not has_cookies:
            self.auth_log.add_authentication_log(f"Login failed (no session cookies): {identifier}")
            raise LocalLoginError(MSG_NO_COOKIES, reason="no_cookies")

        user = await self.users.find_by_identifier(identifier)

        if user is None:
            self.auth_log.add_authentication_log(f"Login failed (no such user/email): {identifier}")
            raise LocalLoginError(MSG_NO_SUCH_USER, reason="not_found")

        if user.get_preference(PREF_IS_EMAIL_VERIFIED) != "1":
            self.auth_log.add_authentication_log(f"Login failed (not verified by user): {identifier}")
            raise LocalLoginError(MSG_NOT_VERIFIED, reason="not_verified")

        if user.get_preference(PREF_IS_ACCOUNT_APPROVED) != "1":
            self.auth_log.add_authentication_log(f"Login failed (not approved by admin): {identifier}")
            raise LocalLoginError(MSG_NOT_APPROVED, reason="not_approved")

        await self.session.put(SESSION_USER_ID, user.user_id)
        self.auth_log.add_authentication_log(f"Login: {display_label(user)}")

        await self.users.set_preference(user, PREF_TIMESTAMP_ACTIVE, str(int(time.time())))
        await self.users.set_preference(user, PREF_LOGIN_WITH_OAUTH2_PROVIDER, "1")
        await self.users.set_preference(user, PREF_PROVIDER_NAME, provider_name)

        await self.session.put(SESSION_LANGUAGE, user.get_preference(PREF_LANGUAGE))
        await self.session.put(SESSION_THEME, user.get_preference(PREF_THEME))

        return user

    def _redirect_to_login(self, target_url: str) -> LoginResult:
        return LoginResult.redirect(f"{self.settings.login_url}?{urlencode({'url': target_url})}")

    def _local_url(self, url: str) -> str:
        """Accept only local URLs as login targets"""
        if url.startswith("/") and not url.startswith("//") and "\\" not in url:
            return url
        return self.settings.home_url

    def _key(self, name: str) -> str:
        return self.settings.session_prefix + name


async def pop_registration_data(session: SessionStore, settings: Settings) -> Optional[Dict[str, str]]:
    """Return and clear the registration pre-fill left by the last login attempt.

    Includes the access token as password, which is never put into the
    registration URL. Returns None if no registration is pending.
    """
    key = settings.session_prefix + SESSION_REGISTRATION
    raw = await session.get(key)
    if not raw:
        return None
    await session.forget(key)
    return json.loads(raw)
