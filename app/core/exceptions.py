"""
Domain errors raised by the live class services.

Each error carries the HTTP status and a short machine readable type; the
handler registered in main.py renders them as {"error": ..., "type": ...}.
"""


class LiveClassError(Exception):
    status_code = 400
    error_type = "error"

    def __init__(self, message: str, status_code: int = None):
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(message)


class NotFoundError(LiveClassError):
    status_code = 404
    error_type = "not_found"


class ConflictError(LiveClassError):
    status_code = 409
    error_type = "conflict"


class InvalidSignatureError(LiveClassError):
    status_code = 400
    error_type = "invalid_signature"


class InvalidStateError(LiveClassError):
    status_code = 400
    error_type = "invalid_state"


class ForbiddenError(LiveClassError):
    status_code = 403
    error_type = "forbidden"


class UpstreamError(LiveClassError):
    """Payment gateway, meeting provider or mail server failed."""

    status_code = 502
    error_type = "upstream_failure"


class PaymentProcessingError(LiveClassError):
    """Raised when both the payment transaction and its fallback failed."""

    status_code = 500
    error_type = "payment_processing_failed"
