import logging
import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from paygate import __version__
from paygate.api.routers.health import router as health_router
from paygate.api.routers.payments import router as payments_router
from paygate.api.routers.webhooks import router as webhooks_router
from paygate.application.interfaces.clock import SystemClock
from paygate.config import Settings, get_settings
from paygate.domain.errors import ConfigurationMissingError
from paygate.infrastructure.gateways.factory import PaymentGatewayFactory

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def check_required_providers(settings: Settings) -> None:
    """
    Abort startup when a provider listed in ``required_providers`` is not configured.

    Raises:
        ConfigurationMissingError: naming the first such provider and its missing keys.
    """
    factory = PaymentGatewayFactory(
        config=settings.gateway_config(),
        clock=SystemClock(),
        payment_repo=None,
    )
    for provider in settings.required_providers:
        try:
            gateway = factory.get_gateway(provider)
        except KeyError:
            raise ConfigurationMissingError(provider, ["unknown provider"]) from None
        report = gateway.configuration_report()
        if not report.configured:
            raise ConfigurationMissingError(provider, report.issues)
        for warning in report.warnings:
            logger.warning(
                "Payment provider configuration warning",
                extra={"provider": provider, "warning": warning},
            )


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    check_required_providers(settings)
    engine = None
    if not settings.use_in_memory:
        from paygate.api.deps import get_engine
        from paygate.infrastructure.db.engine import create_schema

        engine = get_engine()
        await create_schema(engine)
    logger.info(
        "Payment service started",
        extra={"in_memory": settings.use_in_memory, "required": settings.required_providers},
    )
    yield
    if engine is not None:
        await engine.dispose()


app = FastAPI(
    title="Payment Gateway API",
    version=__version__,
    lifespan=lifespan,
)


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Logs unhandled errors and returns a generic 500 without internals."""
    error_id = str(uuid.uuid4())
    logger.error(
        "Unhandled exception occurred",
        exc_info=exc,
        extra={
            "error_id": error_id,
            "path": request.url.path,
            "method": request.method,
            "client_host": request.client.host if request.client else None,
        },
    )
    return JSONResponse(
        status_code=500,
        content={
            "detail": "Internal server error",
            "error_id": error_id,
            "message": "An unexpected error occurred. Please contact support with the error_id.",
        },
    )


app.include_router(health_router, tags=["Health"])
app.include_router(payments_router, prefix="/api/v1", tags=["Payments"])
app.include_router(webhooks_router, prefix="/api/v1", tags=["Webhooks"])
