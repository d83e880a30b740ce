import logging

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from invite_gateway.core.config import load_config, require_provider_credentials
from invite_gateway.core.errors import ConfigurationError, ProviderError
from invite_gateway.observability.logger import init_sentry
from invite_gateway.routes.event import router as event_router
from invite_gateway.routes.health import router as health_router

load_dotenv()

logger = logging.getLogger("invite_gateway")
logging.basicConfig(level=logging.INFO)

app = FastAPI(title="Invite Gateway")


@app.on_event("startup")
def _startup():
    cfg = load_config()
    try:
        require_provider_credentials(cfg)
    except ConfigurationError as e:
        logger.error(f"Refusing to start: {e}")
        raise
    logger.info(f"Provider gateway configured: {cfg.provider_base_url} (timeout {cfg.provider_timeout_seconds}s)")


@app.exception_handler(ProviderError)
async def _provider_error_handler(request: Request, exc: ProviderError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


@app.exception_handler(ConfigurationError)
async def _configuration_error_handler(request: Request, exc: ConfigurationError) -> JSONResponse:
    logger.error(f"{request.url.path}: {exc}")
    return JSONResponse(status_code=exc.status_code, content={"error": str(exc)})


# Routes
app.include_router(health_router, tags=["health"])
app.include_router(event_router, tags=["event"])

init_sentry()
