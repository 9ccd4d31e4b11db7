"""
Error handling module for the FitFlow billing backend.
This module provides consistent error handling across the application.
"""

from config.environment import Environment
import logging
import traceback
from functools import wraps

logger = logging.getLogger(__name__)


def configure_logging():
    """Configure root logging from the environment settings"""
    logging_config = Environment.get_logging_config()
    logging.basicConfig(
        level=getattr(logging, str(logging_config['level']).upper(), logging.INFO),
        format=logging_config['format']
    )


class AppError(Exception):
    """Base exception class for application errors"""
    def __init__(self, message, error_code=None, details=None):
        self.message = message
        self.error_code = error_code
        self.details = details
        super().__init__(self.message)

class DatabaseError(AppError):
    """Database-related errors"""
    pass

class ValidationError(AppError):
    """Data validation errors"""
    pass

class ConfigurationError(AppError):
    """Missing or invalid server configuration"""
    pass

class WebhookSignatureError(AppError):
    """Webhook request could not be authenticated"""
    pass

class BillingProviderError(AppError):
    """Errors reported by the billing provider"""
    def __init__(self, message, error_code=None, details=None, status_code=500):
        super().__init__(message, error_code=error_code, details=details)
        self.status_code = status_code


def handle_error(func):
    """
    Decorator for consistent error handling

    Args:
        func: Function to wrap with error handling

    Returns:
        Wrapped function with error handling
    """
    @wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except AppError as e:
            # Log application-specific errors
            logger.error(f"Application error: {e.message}")
            if Environment.DEBUG_MODE:
                logger.error(f"Error details: {e.details}")
            raise
        except Exception as e:
            # Log unexpected errors
            logger.error(f"Unexpected error: {str(e)}")
            if Environment.DEBUG_MODE:
                logger.error(f"Traceback: {traceback.format_exc()}")
            raise AppError(
                "An unexpected error occurred",
                error_code="UNEXPECTED_ERROR",
                details=str(e)
            ) from e
    return wrapper

def log_error(error, context=None):
    """
    Log an error with context

    Args:
        error: The error to log
        context: Additional context information

    Returns:
        Error description suitable for an API response body
    """
    error_message = getattr(error, 'message', None) or str(error)
    logged_message = error_message
    if context:
        logged_message += f" | Context: {context}"

    logger.error(logged_message)
    if Environment.DEBUG_MODE:
        logger.error(f"Traceback: {traceback.format_exc()}")

    return {
        'success': False,
        'error': error_message,
        'error_code': getattr(error, 'error_code', None) or 'UNKNOWN_ERROR',
        'details': getattr(error, 'details', None) if Environment.DEBUG_MODE else None
    }
