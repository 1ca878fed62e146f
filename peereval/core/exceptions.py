"""Domain exceptions raised by the service layer.

Each exception carries the HTTP status it maps to, so routers can let them
propagate and the application handler renders them as ``{"error": message}``.
"""


class PeerEvalError(Exception):
    """Base exception for all PeerEval domain errors."""

    status_code = 500

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ValidationError(PeerEvalError):
    """Raised when input is malformed or incomplete."""

    status_code = 400


class BusinessRuleError(PeerEvalError):
    """Raised when a request breaks a domain rule (deadline, team membership, duplicates)."""

    status_code = 400


class NotFoundError(PeerEvalError):
    """Raised when a referenced entity does not exist."""

    status_code = 404


class ForbiddenError(PeerEvalError):
    """Raised when the caller does not own or belong to the resource."""

    status_code = 403
