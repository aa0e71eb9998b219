# tradesphere/errors.py
"""Exceptions raised by the order core.

Each error carries the HTTP status it is reported with; the API layer
translates any ``TradeSphereError`` into the ``{success: false, message}``
envelope.
"""


class TradeSphereError(Exception):
    """Base exception for all order core errors."""

    status_code = 500

    def __init__(self, message: str, status_code: int = None):
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(message)


class ValidationError(TradeSphereError):
    """Raised when required input is missing or malformed."""

    status_code = 400


class EmptyCartError(TradeSphereError):
    """Raised when checkout is attempted with no cart or an empty one."""

    status_code = 400

    def __init__(self):
        super().__init__("Cart is empty")


class ProductUnavailableError(TradeSphereError):
    """Raised when a cart item points at a deleted or inactive product."""

    status_code = 404

    def __init__(self, product_id: str):
        self.product_id = product_id
        super().__init__(f"Product {product_id} not available")


class InsufficientStockError(TradeSphereError):
    """Raised when a requested quantity exceeds available stock."""

    status_code = 400

    def __init__(self, product_name: str, requested: int = None, available: int = None):
        self.product_name = product_name
        self.requested = requested
        self.available = available
        super().__init__(f"Insufficient stock for {product_name}")


class NotAuthenticatedError(TradeSphereError):
    """Raised when a request carries no valid bearer token."""

    status_code = 401

    def __init__(self, message: str = "Not authorized, no valid token"):
        super().__init__(message)


class NotAuthorizedError(TradeSphereError):
    """Raised for both wrong-owner and wrong-role access."""

    status_code = 403

    def __init__(self, message: str = "Not authorized"):
        super().__init__(message)


class NotFoundError(TradeSphereError):
    """Raised when a resource id does not resolve."""

    status_code = 404

    def __init__(self, resource: str, resource_id: str):
        self.resource = resource
        self.resource_id = resource_id
        super().__init__(f"{resource} not found")


class InvalidStatusError(TradeSphereError):
    """Raised for unknown fulfillment statuses or disallowed transitions."""

    status_code = 400


class AlreadyApprovedError(TradeSphereError):
    """Raised when approving, or resubmitting, an already approved payment."""

    status_code = 400

    def __init__(self, message: str = "Payment already approved"):
        super().__init__(message)


class InvalidPaymentStateError(TradeSphereError):
    """Raised when a payment change would move an order backwards."""

    status_code = 400


class GatewayVerificationError(TradeSphereError):
    """Raised when the payment gateway does not confirm a transaction.

    400 when the gateway answered with a non-success status, 500 when the
    call itself failed (network, HTTP or parse errors).
    """

    status_code = 400

    def __init__(self, message: str = "Payment verification failed",
                 status_code: int = None, reference: str = None):
        self.reference = reference
        super().__init__(message, status_code)
