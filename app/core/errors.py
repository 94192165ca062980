"""
Error taxonomy shared by the services and the HTTP layer.

Services raise these; the handlers registered in ``app.main`` turn them into
``{"success": false, "message": ..., "kind": ...}`` responses. ``kind`` is the
stable value callers branch on; ``message`` is for humans and, for gateway
errors, is the upstream text passed through unmodified.
"""


class AppError(Exception):
    status_code = 500
    kind = "internal_error"
    default_message = "Internal server error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(AppError):
    status_code = 400
    kind = "validation_error"
    default_message = "Invalid request"


class NotFound(AppError):
    status_code = 404
    kind = "not_found"
    default_message = "Not found"


class Forbidden(AppError):
    status_code = 403
    kind = "forbidden"
    default_message = "Not authorized to access this resource"


class Conflict(AppError):
    status_code = 409
    kind = "conflict"
    default_message = "Invalid state transition"


class AuthenticationFailed(AppError):
    status_code = 401
    kind = "authentication_failed"
    default_message = "Invalid signature"


class GatewayError(AppError):
    retryable = False

    def __init__(self, message: str | None = None, upstream_status: int | None = None):
        super().__init__(message)
        self.upstream_status = upstream_status


class GatewayUnavailable(GatewayError):
    status_code = 503
    kind = "gateway_unavailable"
    default_message = "Payment gateway unavailable, please retry"
    retryable = True


class GatewayRejected(GatewayError):
    status_code = 502
    kind = "gateway_rejected"
    default_message = "Request rejected by upstream service"


class UnknownReference(AppError):
    status_code = 404
    kind = "unknown_reference"
    default_message = "No payment matches this reference"


class ReconciliationFailed(AppError):
    status_code = 500
    kind = "reconciliation_failed"
    default_message = "Payment outcome could not be applied"
