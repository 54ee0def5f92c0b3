"""Billing error taxonomy.

Services raise these; the API layer renders them with the status code each
class carries.
"""


class BillingError(Exception):
    status_code = 400

    def __init__(self, message: str, field: str | None = None):
        super().__init__(message)
        self.message = message
        self.field = field

    def to_dict(self) -> dict:
        return {"detail": self.message, "field": self.field, "type": type(self).__name__}


class ValidationError(BillingError):
    """Missing or malformed input."""

    status_code = 422


class NotFoundError(BillingError):
    status_code = 404


class ConflictError(BillingError):
    """A unique human-readable number collides with an existing record."""

    status_code = 409


class ForbiddenOperationError(BillingError):
    status_code = 403
