"""Authorization provider abstraction layer.

Supports multiple OAuth2 identity providers via pluggable variants:
- Generic: any OAuth2 server with configured endpoints
- Joomla, WordPress: self-hosted OAuth2 server plugins
- Github, Google, Facebook, Instagram: public identity providers
"""

from .errors import (
    ConfigurationError,
    ErrorKind,
    IdentityDataError,
    IdentityProviderError,
    LocalLoginError,
    LoginFlowError,
    ProtocolError,
)
from .factory import ProviderRegistry
from .provider import AuthorizationProvider, ProviderConfig, ProviderVariant
from .providers import PROVIDER_VARIANTS

__all__ = [
    "AuthorizationProvider",
    "ProviderConfig",
    "ProviderVariant",
    "ProviderRegistry",
    "PROVIDER_VARIANTS",
    "ErrorKind",
    "LoginFlowError",
    "ConfigurationError",
    "ProtocolError",
    "IdentityProviderError",
    "IdentityDataError",
    "LocalLoginError",
]
