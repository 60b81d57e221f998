"""
Common Error Constants and Exceptions

Centralized messages for cart/wishlist outcomes, plus the exception types
raised inside the commerce engine.
"""

# Input errors
ERROR_INVALID_PRODUCT = "Invalid product data"
ERROR_INVALID_QUANTITY = "Quantity must be a positive integer"

# Stock errors
ERROR_STOCK_EXCEEDED = "Cannot add more items. Only {limit} in stock."
ERROR_OUT_OF_STOCK = "Product out of stock"

# Wishlist
INFO_ALREADY_IN_WISHLIST = "Item already in wishlist"

# Storage errors
ERROR_PERSISTENCE_FAILED = "Your changes could not be saved on this device"
ERROR_STORE_REJECTED_WRITE = "Store rejected write"
ERROR_CORRUPT_STATE = "Persisted state is corrupted"


class CommerceError(Exception):
    """Base error for cart and wishlist operations."""

    def __init__(self, message: str, code: str | None = None, product_id: str | None = None) -> None:
        super().__init__(message)
        self.code = code
        self.product_id = product_id


class InvalidInputError(CommerceError):
    """Product snapshot or quantity failed validation."""

    def __init__(self, message: str = ERROR_INVALID_PRODUCT, product_id: str | None = None) -> None:
        super().__init__(message, code="INVALID_INPUT", product_id=product_id)


class StockExceededError(CommerceError):
    """Requested quantity is above the line's stock limit."""

    def __init__(self, product_id: str, limit: int, requested: int) -> None:
        super().__init__(
            ERROR_STOCK_EXCEEDED.format(limit=limit),
            code="STOCK_EXCEEDED",
            product_id=product_id,
        )
        self.limit = limit
        self.requested = requested


class PersistenceError(CommerceError):
    """The durable store failed or refused a write."""

    def __init__(self, message: str = ERROR_PERSISTENCE_FAILED, key: str | None = None) -> None:
        super().__init__(message, code="PERSISTENCE_FAILURE")
        self.key = key


class CorruptStateError(CommerceError):
    """A persisted blob could not be decoded into a valid collection."""

    def __init__(self, message: str = ERROR_CORRUPT_STATE, key: str | None = None) -> None:
        super().__init__(message, code="CORRUPT_STATE")
        self.key = key
