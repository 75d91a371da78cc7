# app/domain/errors.py
"""
Wyjatki domenowe sklepu.

Kazdy niesie kod HTTP i bezpieczny dla klienta komunikat, handler w
app.api zamienia je na koperte {status, message, data}.
"""


class ShopError(Exception):
    status_code = 500
    message = "Something went wrong. Please try again."

    def __init__(self, message: str | None = None, data: dict | None = None):
        self.message = message or self.message
        self.data = data
        super().__init__(self.message)


class NotFound(ShopError):
    status_code = 404
    message = "Resource not found."


class Unauthenticated(ShopError):
    status_code = 401
    message = "You must be logged in to perform this action."


class Unauthorized(ShopError):
    status_code = 403
    message = "Unauthorized action."


class Unavailable(ShopError):
    status_code = 422
    message = "This product is currently out of stock."


class InsufficientStock(ShopError):
    status_code = 422
    message = "Not enough items in stock."


class EmptyCart(ShopError):
    status_code = 422
    message = "Your cart is empty."


class PaymentFailed(ShopError):
    status_code = 422
    message = "Payment failed."


class InvalidTransition(ShopError):
    status_code = 422
    message = "This action is not allowed for the order in its current state."


class DuplicateReview(ShopError):
    status_code = 422
    message = "You have already reviewed this product."


class CartBusy(ShopError):
    status_code = 409
    message = "Your cart is being updated. Please try again."


class WebhookRejected(ShopError):
    status_code = 400
    message = "Webhook rejected."


class Internal(ShopError):
    status_code = 500


class InvalidInput(ShopError):
    status_code = 422
    message = "The given data was invalid."
