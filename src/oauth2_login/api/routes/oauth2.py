"""OAuth2 Login Routes

Key Endpoints:
- GET|POST {redirect_route}: Login with an authorization provider; also the
  callback URL registered at the providers
- GET /api/v1/oauth2/providers: Configured providers with sign-in labels
- GET /api/v1/oauth2/messages: Pending flash messages of the session
- GET /api/v1/oauth2/registration: Registration pre-fill of the session (single use)
"""

import logging
from typing import Dict, List
from urllib.parse import urlencode

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import RedirectResponse
from pydantic import BaseModel
from redis.asyncio import Redis

from oauth2_login.config.settings import Settings, get_settings
from oauth2_login.core.auth import ProviderRegistry
from oauth2_login.core.login.orchestrator import (
    LoginOrchestrator,
    LoginRequest,
    LoginResultKind,
    pop_registration_data,
)
from oauth2_login.api.routes.dependencies import (
    get_provider_registry,
    get_redis,
    get_session,
    get_session_id,
)
from oauth2_login.infrastructure.logging.auth_log import AuthenticationLog
from oauth2_login.infrastructure.session.flash import FlashMessages
from oauth2_login.infrastructure.session.store import RedisSessionStore
from oauth2_login.infrastructure.users.user_store import RedisUserRepository

router = APIRouter(tags=["oauth2"])
logger = logging.getLogger(__name__)


# ============================================================================
# Response Models
# ============================================================================

class ProviderInfo(BaseModel):
    """A configured authorization provider"""
    provider_name: str
    label: str
    login_url: str


class FlashMessage(BaseModel):
    text: str
    status: str


class RegistrationData(BaseModel):
    """Identity data for the registration form of the host application"""
    email: str
    realname: str
    username: str
    password: str
    provider_name: str
    comments: str


# ============================================================================
# Endpoints
# ============================================================================

@router.api_route(get_settings().redirect_route, methods=["GET", "POST"])
async def login_with_authorization_provider(
    request: Request,
    code: str = "",
    state: str = "",
    provider_name: str = "",
    url: str = "",
    settings: Settings = Depends(get_settings),
    registry: ProviderRegistry = Depends(get_provider_registry),
    redis: Redis = Depends(get_redis),
    session_id: str = Depends(get_session_id),
    session: RedisSessionStore = Depends(get_session),
):
    """Perform a login with an authorization provider.

    The first request carries provider_name (and the local url to return
    to) and is redirected to the provider. The provider redirects back to
    the same route with code and state.

    Raises:
        HTTPException: 404 if no local account exists and registration is disabled
    """
    orchestrator = LoginOrchestrator(
        registry=registry,
        session=session,
        flash=FlashMessages(session),
        users=RedisUserRepository(redis),
        auth_log=AuthenticationLog(settings.debugging_activated),
        settings=settings,
    )

    result = await orchestrator.handle(
        LoginRequest(
            code=code,
            state=state,
            provider_name=provider_name,
            url=url,
            has_cookies=bool(request.cookies),
        )
    )

    if result.kind == LoginResultKind.NOT_FOUND:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User registration is disabled"
        )

    response = RedirectResponse(result.location, status_code=status.HTTP_302_FOUND)
    response.set_cookie(
        settings.session_cookie_name,
        session_id,
        max_age=settings.session_ttl_seconds,
        httponly=True,
        samesite="lax",
    )
    return response


@router.get("/api/v1/oauth2/providers", response_model=List[ProviderInfo])
async def list_configured_providers(
    url: str = "/",
    settings: Settings = Depends(get_settings),
    registry: ProviderRegistry = Depends(get_provider_registry),
):
    """List the providers with complete configuration for the sign-in menu"""
    providers = []
    for provider_name, label in registry.sign_in_button_labels().items():
        query = urlencode({"provider_name": provider_name, "url": url})
        providers.append(
            ProviderInfo(
                provider_name=provider_name,
                label=label,
                login_url=f"{settings.redirect_route}?{query}",
            )
        )
    return providers


@router.get("/api/v1/oauth2/messages", response_model=List[FlashMessage])
async def pop_flash_messages(session: RedisSessionStore = Depends(get_session)) -> List[Dict[str, str]]:
    """Return and clear the flash messages of the current session"""
    return await FlashMessages(session).pop_messages()


@router.get("/api/v1/oauth2/registration", response_model=RegistrationData)
async def pop_registration(
    settings: Settings = Depends(get_settings),
    session: RedisSessionStore = Depends(get_session),
):
    """Return and clear the registration pre-fill of the current session.

    Raises:
        HTTPException: 404 if no registration is pending
    """
    data = await pop_registration_data(session, settings)
    if data is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No registration pending"
        )
    return data
