# Overview: Domain error taxonomy shared by services and routes.

"""
Every error raised by the booking and ledger services is operational: it maps
to a 4xx response with a stable machine-readable code. Routes catch CargoError,
roll back the session and serialize it with to_dict().
"""


class CargoError(Exception):
    """Base class for recoverable domain errors."""

    code = "CARGO_ERROR"
    status_code = 400

    def __init__(self, message: str | None = None):
        super().__init__(message or self.code)
        self.message = message or self.code

    def to_dict(self) -> dict:
        return {"error": self.message, "code": self.code}


class NotFoundError(CargoError):
    """Operator, user, booking or transfer missing (or owned by another operator)."""

    code = "NOT_FOUND"
    status_code = 404


class InsufficientBalanceError(CargoError):
    """Transfer amount exceeds the source user's cargo balance."""

    code = "INSUFFICIENT_BALANCE"
    status_code = 400


class AlreadyProcessedError(CargoError):
    """Mutation attempted on a transfer that already left Pending."""

    code = "ALREADY_PROCESSED"
    status_code = 409


class InvalidStatusError(CargoError):
    """Unknown status value or an illegal status transition."""

    code = "INVALID_STATUS"
    status_code = 400


class ValidationError(CargoError):
    """400-level input problem."""

    code = "VALIDATION_ERROR"
    status_code = 400


class ConflictError(CargoError):
    """409-level business rule conflict (e.g., duplicate operator code)."""

    code = "CONFLICT"
    status_code = 409
