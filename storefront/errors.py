"""
Common Error Constants

Centralized error messages shared by the cart API and the cart client.
"""

# Auth errors
ERROR_UNAUTHORIZED = "Unauthorized"

# Cart errors
ERROR_CART_KEYS_REQUIRED = "productId and variantId are required"
ERROR_CART_UNAVAILABLE = "Cart service unavailable"

# Generic errors
ERROR_UNKNOWN = "Unknown error"
ERROR_GENERIC = "Something went wrong"


class CartSyncError(Exception):
    """A call to the server-side cart store failed."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code

    def __str__(self) -> str:
        if self.status_code is None:
            return self.message
        return f"{self.message} (HTTP {self.status_code})"
