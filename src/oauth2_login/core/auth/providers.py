"""Supported authorization providers.

Each provider is a ProviderVariant: where its endpoints come from, which
options it needs, which identity fields are authoritative, and how its
userinfo payload maps onto a CanonicalIdentity. PROVIDER_VARIANTS is the
closed set of providers known to the registry.
"""

from typing import Any, Dict, Mapping

from oauth2_login.core.auth.errors import IdentityProviderError
from oauth2_login.core.auth.provider import (
    Endpoints,
    ProviderVariant,
    fixed_endpoints,
)
from oauth2_login.domain.models import CanonicalIdentity, FieldAuthority, IdentityField

PRIMARY = FieldAuthority.PRIMARY
MANDATORY = FieldAuthority.MANDATORY
OPTIONAL = FieldAuthority.OPTIONAL
UNUSED = FieldAuthority.UNUSED

USER_NAME = IdentityField.USER_NAME
REAL_NAME = IdentityField.REAL_NAME
EMAIL = IdentityField.EMAIL

DEFAULT_OPTIONS = (
    "clientId",
    "clientSecret",
    "urlAuthorize",
    "urlAccessToken",
    "urlResourceOwnerDetails",
)


def _first(user_data: Dict[str, Any], *keys: str) -> str:
    """Return the first non-null value among keys as a string; empty if none"""
    for key in keys:
        value = user_data.get(key)
        if value is not None:
            return str(value)
    return ""


# Normalizers

def normalize_generic(user_data: Dict[str, Any]) -> CanonicalIdentity:
    return CanonicalIdentity(
        external_id=_first(user_data, "id", "sub"),
        user_name=_first(user_data, "username", "email"),
        real_name=_first(user_data, "name"),
        email=_first(user_data, "email"),
    )


def normalize_joomla(user_data: Dict[str, Any]) -> CanonicalIdentity:
    return CanonicalIdentity(
        external_id=_first(user_data, "id"),
        user_name=_first(user_data, "username"),
        real_name=_first(user_data, "name", "username"),
        email=_first(user_data, "email"),
    )


def normalize_github(user_data: Dict[str, Any]) -> CanonicalIdentity:
    return CanonicalIdentity(
        external_id=_first(user_data, "id"),
        user_name=_first(user_data, "login"),
        real_name=_first(user_data, "name", "login"),
        email=_first(user_data, "email"),
    )


def normalize_google(user_data: Dict[str, Any]) -> CanonicalIdentity:
    """Google has no user name; email is the lookup key."""
    external_id = _first(user_data, "sub", "id")
    if not external_id:
        raise IdentityProviderError(
            f"Invalid user data received from the authorization provider: {user_data}. "
            "Check the setting for urlResourceOwnerDetails in the configuration."
        )

    return CanonicalIdentity(
        external_id=external_id,
        user_name="",
        real_name=_first(user_data, "name"),
        email=_first(user_data, "email"),
    )


def normalize_facebook(user_data: Dict[str, Any]) -> CanonicalIdentity:
    """Facebook has no user name; email is the lookup key."""
    return CanonicalIdentity(
        external_id=_first(user_data, "id"),
        user_name="",
        real_name=_first(user_data, "name"),
        email=_first(user_data, "email"),
    )


def normalize_wordpress(user_data: Dict[str, Any]) -> CanonicalIdentity:
    first_name = _first(user_data, "first_name")
    last_name = _first(user_data, "last_name")

    real_name = " ".join(part for part in (first_name, last_name) if part)
    if not real_name:
        real_name = _first(user_data, "display_name")

    return CanonicalIdentity(
        external_id=_first(user_data, "ID", "id"),
        user_name=_first(user_data, "username", "email"),
        real_name=real_name,
        email=_first(user_data, "email"),
    )


def normalize_instagram(user_data: Dict[str, Any]) -> CanonicalIdentity:
    return CanonicalIdentity(
        external_id=_first(user_data, "id"),
        user_name=_first(user_data, "username"),
        real_name=_first(user_data, "name", "username"),
        email="",
    )


# Endpoint builders

def joomla_endpoints(options: Mapping[str, str]) -> Endpoints:
    # Joomla serves token and resource owner details from the authorize URL
    url = options.get("urlAuthorize", "")
    return Endpoints(url, url, url)


def facebook_endpoints(options: Mapping[str, str]) -> Endpoints:
    version = options.get("graphApiVersion", "")
    return Endpoints(
        authorize_url=f"https://www.facebook.com/{version}/dialog/oauth",
        token_url=f"https://graph.facebook.com/{version}/oauth/access_token",
        userinfo_url=f"https://graph.facebook.com/{version}/me?fields=id,name,email",
    )


GENERIC = ProviderVariant(
    name="Generic",
    display_name="Generic OAuth2",
    required_options=DEFAULT_OPTIONS,
    field_authority={USER_NAME: MANDATORY, REAL_NAME: OPTIONAL, EMAIL: PRIMARY},
    normalize=normalize_generic,
)

JOOMLA = ProviderVariant(
    name="Joomla",
    display_name="Joomla",
    required_options=("clientId", "clientSecret", "urlAuthorize"),
    field_authority={USER_NAME: PRIMARY, REAL_NAME: OPTIONAL, EMAIL: MANDATORY},
    normalize=normalize_joomla,
    endpoints=joomla_endpoints,
)

GITHUB = ProviderVariant(
    name="Github",
    display_name="GitHub",
    required_options=("clientId", "clientSecret"),
    field_authority={USER_NAME: MANDATORY, REAL_NAME: OPTIONAL, EMAIL: PRIMARY},
    normalize=normalize_github,
    endpoints=fixed_endpoints(
        "https://github.com/login/oauth/authorize",
        "https://github.com/login/oauth/access_token",
        "https://api.github.com/user",
    ),
    scopes=("read:user", "user:email"),
)

GOOGLE = ProviderVariant(
    name="Google",
    display_name="Google",
    required_options=("clientId", "clientSecret"),
    field_authority={USER_NAME: OPTIONAL, REAL_NAME: OPTIONAL, EMAIL: PRIMARY},
    normalize=normalize_google,
    endpoints=fixed_endpoints(
        "https://accounts.google.com/o/oauth2/v2/auth",
        "https://oauth2.googleapis.com/token",
        "https://openidconnect.googleapis.com/v1/userinfo",
    ),
    scopes=("openid", "email", "profile"),
)

FACEBOOK = ProviderVariant(
    name="Facebook",
    display_name="Facebook",
    required_options=("clientId", "clientSecret", "graphApiVersion"),
    field_authority={USER_NAME: OPTIONAL, REAL_NAME: OPTIONAL, EMAIL: PRIMARY},
    normalize=normalize_facebook,
    endpoints=facebook_endpoints,
    scopes=("public_profile", "email"),
)

WORDPRESS = ProviderVariant(
    name="WordPress",
    display_name="WordPress",
    required_options=DEFAULT_OPTIONS + ("signInButtonLabel",),
    field_authority={USER_NAME: PRIMARY, REAL_NAME: OPTIONAL, EMAIL: MANDATORY},
    normalize=normalize_wordpress,
    scopes=("openid", "profile", "email"),
)

INSTAGRAM = ProviderVariant(
    name="Instagram",
    display_name="Instagram",
    required_options=("clientId", "clientSecret"),
    field_authority={USER_NAME: PRIMARY, REAL_NAME: OPTIONAL, EMAIL: UNUSED},
    normalize=normalize_instagram,
    endpoints=fixed_endpoints(
        "https://api.instagram.com/oauth/authorize",
        "https://api.instagram.com/oauth/access_token",
        "https://graph.instagram.com/me?fields=id,username",
    ),
    scopes=("user_profile",),
)

PROVIDER_VARIANTS: Dict[str, ProviderVariant] = {
    variant.name: variant
    for variant in (GENERIC, JOOMLA, GITHUB, GOOGLE, FACEBOOK, WORDPRESS, INSTAGRAM)
}
