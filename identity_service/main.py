import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from identity_service.config import Settings, settings as default_settings
from identity_service.container import Services
from identity_service.errors import ServiceError
from identity_service.logging_config import configure_logging
from identity_service.routers import auth, health, users

LOGGER = logging.getLogger(__name__)

API_PREFIX = "/api/v1"


def create_app(
    settings: Settings | None = None, services: Services | None = None
) -> FastAPI:
    settings = settings or default_settings
    configure_logging(settings.log_level)

    app = FastAPI(title="Identity Service")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_origins),
        allow_credentials="*" not in settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(health.router)
    app.include_router(auth.router, prefix=API_PREFIX)
    app.include_router(users.router, prefix=API_PREFIX)

    @app.exception_handler(ServiceError)
    async def handle_service_error(request: Request, exc: ServiceError) -> JSONResponse:
        return JSONResponse(status_code=exc.status_code, content={"message": exc.message})

    @app.on_event("startup")
    def startup() -> None:
        app.state.services = services or Services.from_settings(settings)
        app.state.services.start()
        LOGGER.info("Identity service started")

    @app.on_event("shutdown")
    def shutdown() -> None:
        app.state.services.close()
        LOGGER.info("Identity service stopped")

    return app


app = create_app()
