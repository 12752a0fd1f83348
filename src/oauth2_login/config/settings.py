"""Configuration Settings for the OAuth2 Login Service

Manages environment variables and application configuration.
Provider credentials are not part of these settings; they live in the
INI-style provider configuration file referenced by provider_config_path.
"""

from functools import lru_cache
from pydantic_settings import BaseSettings
from typing import Optional


class Settings(BaseSettings):
    """Application settings"""

    # Service info
    service_name: str = "oauth2-login-service"
    service_version: str = "1.0.0"

    # Server configuration
    host: str = "0.0.0.0"
    port: int = 8000

    # Redis configuration
    redis_host: str = "localhost"
    redis_port: int = 6379
    redis_db: int = 0
    redis_password: Optional[str] = None

    @property
    def redis_url(self) -> str:
        """Construct Redis URL from components"""
        if self.redis_password:
            return f"redis://:{self.redis_password}@{self.redis_host}:{self.redis_port}/{self.redis_db}"
        return f"redis://{self.redis_host}:{self.redis_port}/{self.redis_db}"

    # Public URLs
    base_url: str = "http://localhost:8000"
    redirect_route: str = "/OAuth2Client"
    login_url: str = "/login"
    register_url: str = "/register"
    home_url: str = "/"

    @property
    def redirect_uri(self) -> str:
        """Callback URL registered at the authorization providers"""
        return self.base_url.rstrip("/") + self.redirect_route

    # Provider configuration (INI file with <ProviderName>_<optionName> keys)
    provider_config_path: str = "config/oauth2_providers.ini"
    http_timeout_seconds: float = 10.0

    # Session configuration
    session_cookie_name: str = "oauth2_session"
    session_ttl_seconds: int = 3600
    session_prefix: str = "oauth2_client_"
    state_ttl_seconds: int = 600  # lifetime of an issued CSRF state

    # Maximum field lengths of the local user store
    max_user_name_length: int = 32
    max_password_length: int = 128
    max_text_length: int = 64

    # Logging
    log_level: str = "INFO"
    debugging_activated: bool = False  # module debug log

    # Feature flags
    enable_registration: bool = True

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance

    Returns:
        Settings instance
    """
    return Settings()
