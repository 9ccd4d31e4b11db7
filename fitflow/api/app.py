import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from config.environment import Environment
from fitflow.api.billing_router import billing_router
from fitflow.api.users_router import users_router
from fitflow.core.error_handler import (
    AppError,
    BillingProviderError,
    ValidationError,
    WebhookSignatureError,
    configure_logging,
    log_error,
)
from fitflow.core.firebase_manager import FirebaseManager

logger = logging.getLogger(__name__)


def _status_for(error: AppError) -> int:
    if isinstance(error, BillingProviderError):
        return error.status_code
    if isinstance(error, (WebhookSignatureError, ValidationError)):
        return 400
    return 500


def create_app() -> FastAPI:
    configure_logging()
    app = FastAPI(title=f"{Environment.APP_NAME} Billing", version=Environment.APP_VERSION)

    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError):
        status_code = _status_for(exc)
        body = log_error(exc, context=f"{request.method} {request.url.path} -> {status_code}")
        return JSONResponse(status_code=status_code, content=body)

    app.include_router(billing_router)
    app.include_router(users_router)

    @app.on_event("shutdown")
    def close_firebase():
        """Release the Firebase Admin app when the server stops"""
        FirebaseManager.close()

    if not Environment.validate_config():
        logger.warning("Configuration is incomplete; some endpoints will fail until it is fixed")

    return app


app = create_app()
