"""Login attempt state kept in the browser session between the
authorization redirect and the provider callback."""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional


@dataclass
class LoginAttempt:
    """One OAuth2 login attempt.

    Attributes:
        provider_name: Registry key of the chosen provider
        target_url: Local URL to return to after a successful login
        state: CSRF state issued with the authorization URL (single use)
        issued_at: When the state was issued
    """
    provider_name: str = ""
    target_url: str = "/"
    state: Optional[str] = None
    issued_at: Optional[datetime] = None

    def issue_state(self, state: str) -> None:
        """Bind a freshly generated state to this attempt"""
        self.state = state
        self.issued_at = datetime.now(timezone.utc)

    def is_state_expired(self, ttl_seconds: int) -> bool:
        """Check whether the issued state is older than ttl_seconds"""
        if self.issued_at is None:
            return True
        return datetime.now(timezone.utc) > self.issued_at + timedelta(seconds=ttl_seconds)
