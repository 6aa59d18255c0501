"""Order errors.

Every failure the order core can report is an OrderError subclass. Each
carries the HTTP status the API layer answers with, so routes map them
with a single except clause.
"""


class OrderError(Exception):
    """Base class for order failures surfaced to callers."""

    status_code = 400


class ValidationFailure(OrderError):
    """Malformed input: empty line items, bad quantity, bad total or estimate."""

    status_code = 422


class InvalidReference(OrderError):
    """One or more menu item ids did not resolve."""

    def __init__(self, missing: list[str]):
        self.missing = missing
        super().__init__(f"Unknown menu item id(s): {', '.join(missing)}")


class InvalidStatus(OrderError):
    """Status target outside the settable set."""


class NotFound(OrderError):
    """The order does not exist."""

    status_code = 404

    def __init__(self, order_id: str):
        self.order_id = order_id
        super().__init__(f"Order {order_id} not found")


class StoreUnavailable(OrderError):
    """The database could not be reached. Not retried here."""

    status_code = 503
