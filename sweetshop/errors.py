"""Error taxonomy shared by the catalog, cart and auth packages.

Each error carries the HTTP status it is rendered with, so the handlers in
``sweetshop.main`` can turn any of them into ``{"error": <message>}``.
"""


class SweetShopError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(SweetShopError):
    """Malformed or out-of-range input."""
    status_code = 400


class InvalidArgument(ValidationError):
    """A quantity or similar argument outside its allowed range."""


class NotFound(SweetShopError):
    status_code = 404


class InsufficientStock(SweetShopError):
    """Requested quantity exceeds the available stock."""
    status_code = 400


class EmptyCart(SweetShopError):
    status_code = 400


class Unauthorized(SweetShopError):
    status_code = 401


class Forbidden(SweetShopError):
    status_code = 403


class InternalError(SweetShopError):
    status_code = 500
