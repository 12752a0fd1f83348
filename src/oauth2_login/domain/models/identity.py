"""Identity Data Models

Canonical identity returned by every authorization provider and the
field-authority vocabulary providers use to declare which identity
fields are authoritative for matching and updating local accounts.
"""

from enum import Enum
from typing import Dict

from pydantic import BaseModel


class IdentityField(str, Enum):
    """Canonical identity fields that map onto local user data"""
    USER_NAME = "user_name"
    REAL_NAME = "real_name"
    EMAIL = "email"


class FieldAuthority(str, Enum):
    """How a provider's value for an identity field is used

    PRIMARY: lookup key for the local account (exactly one field)
    MANDATORY: overwritten on the local account whenever it differs
    OPTIONAL: used only to pre-fill registration
    UNUSED: ignored
    """
    PRIMARY = "primary"
    MANDATORY = "mandatory"
    OPTIONAL = "optional"
    UNUSED = "unused"


FieldAuthorityMap = Dict[IdentityField, FieldAuthority]


class CanonicalIdentity(BaseModel):
    """Normalized user data received from an authorization provider.

    Attributes:
        external_id: Identifier at the provider (may be empty)
        user_name: User name, empty if the provider has none
        real_name: Display name, empty if unknown
        email: Email address, empty if not released by the provider
    """
    external_id: str = ""
    user_name: str = ""
    real_name: str = ""
    email: str = ""

    def value_of(self, field: IdentityField) -> str:
        """Return the value held for a canonical field"""
        return getattr(self, field.value)
