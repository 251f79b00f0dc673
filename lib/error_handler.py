from typing import Optional
import logging

logger = logging.getLogger(__name__)

# Callable error code -> (wire status, HTTP status)
ERROR_CODES = {
    'invalid-argument': ('INVALID_ARGUMENT', 400),
    'unauthenticated': ('UNAUTHENTICATED', 401),
    'permission-denied': ('PERMISSION_DENIED', 403),
    'not-found': ('NOT_FOUND', 404),
    'resource-exhausted': ('RESOURCE_EXHAUSTED', 429),
    'internal': ('INTERNAL', 500),
    'unknown': ('UNKNOWN', 500),
}

class AppError(Exception):
    def __init__(self, message: str, code: str = 'internal', user_message: Optional[str] = None):
        if code not in ERROR_CODES:
            code = 'unknown'
        self.message = message
        self.code = code
        self.user_message = user_message or message
        super().__init__(self.message)

    @property
    def status(self) -> str:
        return ERROR_CODES[self.code][0]

    @property
    def status_code(self) -> int:
        return ERROR_CODES[self.code][1]

    @classmethod
    def from_status(cls, status: str, message: str) -> 'AppError':
        """Build an error from a wire status such as RESOURCE_EXHAUSTED"""
        code = str(status or '').lower().replace('_', '-')
        return cls(message, code=code)

def error_message(error: Exception) -> str:
    """Best-effort human readable message for an exception"""
    message = getattr(error, 'message', None)
    if isinstance(message, str) and message:
        return message
    return str(error)

class ErrorHandler:
    @staticmethod
    def handle_analysis_error(error: Exception) -> AppError:
        logger.error(f"Error in analyzePrayerContent: {error_message(error)}", exc_info=error)
        if isinstance(error, AppError):
            return error

        status_code = getattr(error, 'status_code', None)
        if status_code == 429:
            return AppError(
                "AI service is temporarily unavailable. Please try again later.",
                code='resource-exhausted'
            )
        if status_code == 401:
            return AppError(
                "Authentication error with AI service. Please try again later.",
                code='unauthenticated'
            )
        return AppError(
            error_message(error) or "AI service error. Please try again later.",
            code='internal'
        )

    @staticmethod
    def handle_embedding_error(error: Exception) -> AppError:
        logger.error(f"Error in getVectorEmbeddings: {error_message(error)}", exc_info=error)
        if isinstance(error, AppError):
            return error
        return AppError(error_message(error) or "Unknown error", code='internal')

    @staticmethod
    def handle_vector_error(error: Exception) -> AppError:
        logger.error(f"Vector search error: {error_message(error)}", exc_info=error)
        if isinstance(error, AppError):
            return error
        return AppError(
            error_message(error) or "Failure: the process failed on the server.",
            code='internal'
        )
