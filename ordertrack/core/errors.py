"""Domain error taxonomy.

Services raise these; the API layer renders them with their status code.
"""

from typing import Any


class OrderTrackError(Exception):
    """Base class for expected business failures."""

    status_code: int = 500

    def __init__(self, message: str, **detail: Any) -> None:
        super().__init__(message)
        self.message = message
        self.detail = detail


class InvalidInputError(OrderTrackError):
    """Malformed input: bad quantity, date, priority, category..."""

    status_code = 400


class NotFoundError(OrderTrackError):
    """Unknown order, line or product."""

    status_code = 404


class ConflictError(OrderTrackError):
    """Business rule conflict (duplicate ARC, shipped line, over-loading...)."""

    status_code = 409


class UnprocessableError(OrderTrackError):
    """Input understood but unusable: unrecognized PDF, unknown labels."""

    status_code = 422

    @property
    def missing_labels(self) -> list[str]:
        return list(self.detail.get("missing_labels") or [])


class PayloadTooLargeError(OrderTrackError):
    """Upload above the configured size limit."""

    status_code = 413
