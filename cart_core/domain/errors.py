# cart_core/domain/errors.py


class CartCoreError(Exception):
    """
    Base error of the cart core.
    kind and status_code are what the HTTP layer renders, retryable tells the
    caller whether repeating the same request can succeed.
    """

    kind = "CartCoreError"
    status_code = 500
    retryable = False

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"kind": self.kind, "message": self.message}


class NotFound(CartCoreError):
    kind = "NotFound"
    status_code = 404


class EmptyCart(CartCoreError):
    kind = "EmptyCart"
    status_code = 400


class AmountMismatch(CartCoreError):
    kind = "AmountMismatch"
    status_code = 400

    def __init__(self, authoritative_total: int, client_claimed_amount: int):
        super().__init__(
            f"Claimed amount {client_claimed_amount} does not match "
            f"cart total {authoritative_total}"
        )
        self.authoritative_total = authoritative_total
        self.client_claimed_amount = client_claimed_amount


class InvalidTransition(CartCoreError):
    kind = "InvalidTransition"
    status_code = 409


class PaymentProviderError(CartCoreError):
    kind = "PaymentProviderError"
    status_code = 500
    retryable = True


class CatalogUnavailable(CartCoreError):
    kind = "CatalogUnavailable"
    status_code = 503
    retryable = True


class PersistenceError(CartCoreError):
    kind = "PersistenceError"
    status_code = 503
    retryable = True
