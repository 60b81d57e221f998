"""Toast-style notices for the storefront, derived from operation results."""
from dataclasses import dataclass
from typing import Optional

from vaxdog.errors import ERROR_OUT_OF_STOCK, ERROR_PERSISTENCE_FAILED

from .observers import EventKind
from .results import OperationResult, OperationStatus

LEVEL_SUCCESS = "success"
LEVEL_INFO = "info"
LEVEL_ERROR = "error"
LEVEL_WARNING = "warning"


@dataclass(frozen=True)
class Notice:
    level: str
    title: str
    description: Optional[str] = None


# (title, description template); {name} and {quantity} are filled in
_SUCCESS_TEXT = {
    EventKind.CART_ADDED: ("Added to cart!", "{name} has been added to your cart."),
    EventKind.CART_UPDATED: ("Updated quantity in cart!", "{name} quantity updated to {quantity}."),
    EventKind.CART_REMOVED: ("Item removed from cart", "{name} has been removed from your cart."),
    EventKind.CART_CLEARED: ("Cart cleared", None),
    EventKind.WISHLIST_ADDED: ("Added to wishlist!", "{name} has been added to your wishlist."),
    EventKind.WISHLIST_REMOVED: ("Removed from wishlist", "{name} has been removed from your wishlist."),
    EventKind.WISHLIST_CLEARED: ("Wishlist cleared", None),
    EventKind.MOVED_TO_CART: ("Moved to cart!", "{name} has been moved to your cart."),
}


def describe(result: OperationResult, product_name: Optional[str] = None) -> Optional[Notice]:
    """
    Notice to show for ``result``, or None when nothing happened.

    A write that did not reach storage is reported as a warning even though
    the change itself succeeded.
    """
    if result.status is OperationStatus.STOCK_EXCEEDED:
        if result.stock_limit == 0:
            return Notice(LEVEL_ERROR, ERROR_OUT_OF_STOCK)
        return Notice(LEVEL_ERROR, result.message)
    if result.status is OperationStatus.INVALID_INPUT:
        return Notice(LEVEL_ERROR, result.message)
    if result.status is OperationStatus.ALREADY_EXISTS:
        return Notice(LEVEL_INFO, result.message)
    if result.status is OperationStatus.NOOP or result.event is None:
        return None

    if not result.persisted:
        return Notice(LEVEL_WARNING, ERROR_PERSISTENCE_FAILED, result.persistence_error)

    title, template = _SUCCESS_TEXT[result.event]
    description = None
    if template:
        description = template.format(name=product_name or "Item", quantity=result.quantity)
    return Notice(LEVEL_SUCCESS, title, description)
