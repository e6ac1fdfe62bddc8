import logging
from typing import Optional

from dotenv import load_dotenv
from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse, PlainTextResponse

from backend.app.routes.accounts import router as accounts_router
from backend.app.routes.auth import router as auth_router
from backend.app.routes.plans import router as plans_router
from backend.app.routes.proxy_users import router as proxy_users_router
from backend.app.routes.webhooks import router as webhooks_router
from backend.app.services.billing import build_services
from backend.app_context import AppServices, configure
from backend.config import AppConfig, load_config
from backend.middleware import CorsWranglerMiddleware, NoCacheAccessLogMiddleware


load_dotenv()

logger = logging.getLogger("api")


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    # Runs outside the middleware stack; stamps no-store itself.
    logger.exception(
        "Unhandled error in request handlers",
        exc_info=exc,
        extra={"request_method": request.method, "request_path": request.url.path},
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal Server Error"},
        headers={"cache-control": "no-store"},
    )


def create_app(config: Optional[AppConfig] = None, services: Optional[AppServices] = None) -> FastAPI:
    """Build the API application with its admission pipeline and routes."""

    config = config or (services.config if services else load_config())
    services = services or build_services(config)

    app = FastAPI(title="Accounts & Billing API")
    configure(app, services)

    # Added last runs first: access log and no-cache wrap CORS.
    app.add_middleware(CorsWranglerMiddleware, api_config=config.api)
    app.add_middleware(NoCacheAccessLogMiddleware)
    app.add_exception_handler(Exception, unhandled_error_handler)

    @app.get("/healthCheck", response_class=PlainTextResponse)
    def health_check() -> str:
        return "Looks good, boss"

    app.include_router(webhooks_router)
    app.include_router(auth_router)
    app.include_router(accounts_router)
    app.include_router(plans_router)
    app.include_router(proxy_users_router)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    runtime_config = load_config()
    logging.basicConfig(level=runtime_config.log_level)
    uvicorn.run(app, host="0.0.0.0", port=runtime_config.api.listen_port)
