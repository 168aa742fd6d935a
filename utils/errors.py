"""
Application error taxonomy and the handlers that render it as JSON.
"""
import logging

from fastapi import Request
from fastapi.exceptions import RequestValidationError

from utils.responses import error_response

logger = logging.getLogger(__name__)


class AppError(Exception):
    status_code = 500

    def __init__(self, message: str, status_code: int = None):
        super().__init__(message)
        self.message = message
        if status_code:
            self.status_code = status_code

    def extra(self) -> dict:
        """Additional keys merged into the JSON error body."""
        return {}


class ValidationError(AppError, ValueError):
    status_code = 400


class AuthenticationError(AppError):
    status_code = 401


class EntitlementRequired(AppError):
    """Raised when a feature needs an active pro subscription."""
    status_code = 403

    def __init__(self, message: str = "Pro subscription required"):
        super().__init__(message)

    def extra(self) -> dict:
        return {"upgrade": True}


class NotFoundError(AppError):
    status_code = 404


class VerificationError(AppError):
    """Webhook payload could not be authenticated."""
    status_code = 400


class UpstreamError(AppError):
    """Store or remote service failure; message must be safe to show."""
    status_code = 500


async def app_error_handler(request: Request, exc: AppError):
    log_level = logging.ERROR if exc.status_code >= 500 else logging.WARNING
    logger.log(log_level, f"{request.method} {request.url.path} -> {exc.status_code}: {exc.message}")
    return error_response(exc.message, status=exc.status_code, **exc.extra())


async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    if errors:
        first = errors[0]
        location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"{location}: {first.get('msg')}" if location else first.get("msg", "Invalid request")
    else:
        message = "Invalid request"
    logger.warning(f"{request.method} {request.url.path} -> 400: {message}")
    return error_response(message, status=400)


def register_error_handlers(app) -> None:
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
