"""Domain models for the OAuth2 Login Service"""

from oauth2_login.domain.models.identity import (
    CanonicalIdentity,
    FieldAuthority,
    FieldAuthorityMap,
    IdentityField,
)
from oauth2_login.domain.models.login import LoginAttempt
from oauth2_login.domain.models.user import (
    PREF_IS_ACCOUNT_APPROVED,
    PREF_IS_EMAIL_VERIFIED,
    PREF_LANGUAGE,
    PREF_LOGIN_WITH_OAUTH2_PROVIDER,
    PREF_PROVIDER_NAME,
    PREF_THEME,
    PREF_TIMESTAMP_ACTIVE,
    LocalUser,
    display_label,
    parse_utc_timestamp,
)

__all__ = [
    # Identity models
    "CanonicalIdentity",
    "FieldAuthority",
    "FieldAuthorityMap",
    "IdentityField",
    # Login attempt
    "LoginAttempt",
    # Local users
    "LocalUser",
    "display_label",
    "parse_utc_timestamp",
    "PREF_IS_EMAIL_VERIFIED",
    "PREF_IS_ACCOUNT_APPROVED",
    "PREF_LANGUAGE",
    "PREF_THEME",
    "PREF_TIMESTAMP_ACTIVE",
    "PREF_LOGIN_WITH_OAUTH2_PROVIDER",
    "PREF_PROVIDER_NAME",
]
