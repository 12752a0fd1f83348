"""Classified errors raised while driving an OAuth2 login attempt.

Every failure in the flow is one of five kinds. All of them are terminal
for the current attempt; the orchestrator converts them into a redirect
with a flash message and never retries.
"""

from enum import Enum


class ErrorKind(Enum):
    """Failure classes of a login attempt"""
    CONFIGURATION = "configuration"
    PROTOCOL = "protocol"
    IDENTITY_PROVIDER = "identity_provider"
    IDENTITY_DATA = "identity_data"
    LOCAL_LOGIN = "local_login"


class LoginFlowError(Exception):
    """Base class for all classified login failures."""

    kind: ErrorKind

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ConfigurationError(LoginFlowError):
    """Provider unknown, incompletely configured, or with invalid field authority."""
    kind = ErrorKind.CONFIGURATION


class ProtocolError(LoginFlowError):
    """CSRF state missing, mismatched or expired."""
    kind = ErrorKind.PROTOCOL


class IdentityProviderError(LoginFlowError):
    """Token exchange or userinfo request failed at the remote provider."""
    kind = ErrorKind.IDENTITY_PROVIDER


class IdentityDataError(LoginFlowError):
    """The returned identity has no usable primary field."""
    kind = ErrorKind.IDENTITY_DATA


class LocalLoginError(LoginFlowError):
    """Local account cannot be signed in (cookies, verification, approval, not found)."""
    kind = ErrorKind.LOCAL_LOGIN

    def __init__(self, message: str, reason: str):
        super().__init__(message)
        self.reason = reason
