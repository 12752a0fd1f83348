"""OAuth2 Login Service

FastAPI application serving the OAuth2 login endpoint of the host
application, the sign-in provider list and the session flash messages.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.responses import JSONResponse

from oauth2_login.config.settings import get_settings
from oauth2_login.api.routes import oauth2
from oauth2_login.infrastructure.redis.client import get_redis_client, close_redis_client

settings = get_settings()

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Connect Redis for sessions and local users; close it on shutdown"""
    settings = get_settings()
    logger.info(f"{settings.service_name} v{settings.service_version}, redirect URI {settings.redirect_uri}")

    await get_redis_client()
    yield
    await close_redis_client()


app = FastAPI(
    title="OAuth2 Login Service",
    version=settings.service_version,
    description="Sign in with external OAuth2 identity providers",
    lifespan=lifespan
)
app.include_router(oauth2.router)


@app.get("/health")
async def health_check():
    return {"status": "healthy", "service": settings.service_name}


@app.get("/")
async def root():
    """Service information and entry points"""
    return {
        "service": settings.service_name,
        "version": settings.service_version,
        "login": settings.redirect_route,
        "providers": "/api/v1/oauth2/providers",
        "redirect_uri": settings.redirect_uri,
    }


@app.exception_handler(Exception)
async def unhandled_exception_handler(request, exc):
    logger.error(f"Unhandled exception on {request.url.path}: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"error": "internal_server_error", "message": "An unexpected error occurred."}
    )


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("oauth2_login.main:app", host=settings.host, port=settings.port, log_level=settings.log_level.lower())
