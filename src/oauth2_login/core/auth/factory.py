"""Authorization provider registry.

Maps a provider name to its ProviderVariant and builds configured
AuthorizationProvider instances. Configuration is read from the provider
configuration file on every lookup; a provider with incomplete
configuration is treated as unavailable.
"""

import logging
from typing import Dict, List, Mapping, Optional, Tuple

import httpx

from oauth2_login.core.auth.provider import (
    OPTIONAL_OPTIONS,
    AuthorizationProvider,
    ProviderConfig,
    ProviderVariant,
)
from oauth2_login.core.auth.providers import PROVIDER_VARIANTS
from oauth2_login.infrastructure.config.provider_config import ProviderConfigSource

logger = logging.getLogger(__name__)


class ProviderRegistry:
    """Registry of the supported authorization providers"""

    def __init__(
        self,
        config_source: ProviderConfigSource,
        variants: Optional[Mapping[str, ProviderVariant]] = None,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize registry.

        Args:
            config_source: Source of the provider configuration keys
            variants: Provider variants by name (default: all supported providers)
            timeout: HTTP timeout passed to created providers
            transport: Optional httpx transport passed to created providers (testing)
        """
        self.config_source = config_source
        self.variants = dict(PROVIDER_VARIANTS if variants is None else variants)
        self.timeout = timeout
        self.transport = transport

    def list_providers(self) -> List[Tuple[str, str]]:
        """Return (name, display name) of every supported provider"""
        return [(name, variant.display_name) for name, variant in self.variants.items()]

    def resolve_config(self, name: str, raw_config: Optional[Mapping[str, str]] = None) -> Optional[ProviderConfig]:
        """Load the configuration of a provider.

        Args:
            name: Provider name
            raw_config: Already read configuration keys (read from the source if omitted)

        Returns:
            ProviderConfig, or None if the provider is unknown or a required option is missing
        """
        variant = self.variants.get(name)
        if variant is None:
            return None

        if raw_config is None:
            raw_config = self.config_source.read()

        prefix = f"{name}_"
        accepted = set(variant.required_options) | set(OPTIONAL_OPTIONS)
        options: Dict[str, str] = {}
        for key, value in raw_config.items():
            if key.startswith(prefix) and key[len(prefix):] in accepted:
                options[key[len(prefix):]] = value

        missing = [option for option in variant.required_options if not options.get(option)]
        if missing:
            logger.debug(f"Provider {name} not configured, missing options: {missing}")
            return None

        scopes = tuple(options.get("scopes", "").replace(",", " ").split())
        return ProviderConfig(name=name, options=options, scopes=scopes)

    def make(self, name: str, redirect_uri: str) -> Optional[AuthorizationProvider]:
        """Create a configured provider bound to a redirect URI.

        Returns:
            AuthorizationProvider, or None if the name is unknown or its configuration incomplete
        """
        config = self.resolve_config(name)
        if config is None:
            return None

        logger.info(f"Authorization provider initialized: {name}")
        return AuthorizationProvider(
            self.variants[name],
            config,
            redirect_uri,
            timeout=self.timeout,
            transport=self.transport,
        )

    def sign_in_button_labels(self) -> Dict[str, str]:
        """Return {provider name: sign-in button label} of all configured providers"""
        raw_config = self.config_source.read()
        labels = {}
        for name in self.variants:
            config = self.resolve_config(name, raw_config)
            if config is not None:
                labels[name] = config.sign_in_button_label
        return labels
