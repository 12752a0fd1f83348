"""Local User Data Model

The local account an OAuth2 identity is matched against. Accounts are
owned by the user repository; the login flow only reads them and
overwrites individual fields.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Optional

from oauth2_login.domain.models.identity import IdentityField

# Preference names
PREF_IS_EMAIL_VERIFIED = "verified"
PREF_IS_ACCOUNT_APPROVED = "verified_by_admin"
PREF_LANGUAGE = "language"
PREF_THEME = "theme"
PREF_TIMESTAMP_ACTIVE = "sessiontime"
PREF_LOGIN_WITH_OAUTH2_PROVIDER = "login_with_oauth2_provider"
PREF_PROVIDER_NAME = "provider_name"


def parse_utc_timestamp(timestamp_str: str) -> datetime:
    """Parse UTC timestamp string to datetime object"""
    if isinstance(timestamp_str, datetime):
        return timestamp_str
    return datetime.fromisoformat(timestamp_str.replace('Z', '+00:00'))


@dataclass
class LocalUser:
    """Local user account

    Attributes:
        user_id: Unique identifier (UUID format)
        user_name: Unique user name
        real_name: Human-readable name
        email: Unique email address
        created_at: Account creation timestamp
        preferences: String preferences (verification, approval, language, ...)
    """
    user_id: str
    user_name: str
    real_name: str
    email: str
    created_at: datetime
    preferences: Dict[str, str] = field(default_factory=dict)

    def value_of(self, identity_field: IdentityField) -> str:
        """Return the local value for a canonical identity field"""
        return getattr(self, identity_field.value)

    def get_preference(self, name: str, default: str = "") -> str:
        return self.preferences.get(name, default)

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization"""
        return {
            "user_id": self.user_id,
            "user_name": self.user_name,
            "real_name": self.real_name,
            "email": self.email,
            "created_at": self.created_at.isoformat(),
            "preferences": dict(self.preferences),
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'LocalUser':
        """Create from dictionary (JSON deserialization)"""
        return cls(
            user_id=data["user_id"],
            user_name=data["user_name"],
            real_name=data.get("real_name", ""),
            email=data.get("email", ""),
            created_at=parse_utc_timestamp(data["created_at"]),
            preferences=data.get("preferences") or {},
        )


def display_label(user: Optional[LocalUser]) -> str:
    """User name / real name label used in authentication log entries"""
    if user is None:
        return ""
    return f"{user.user_name}/{user.real_name}"
