"""Change notifications for the presentation layer."""
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Awaitable, Callable, Optional, Union

from vaxdog.logging import get_logger, sanitize_id_for_logging


class EventKind(str, Enum):
    """What changed."""
    CART_ADDED = "cart_added"
    CART_UPDATED = "cart_updated"
    CART_REMOVED = "cart_removed"
    CART_CLEARED = "cart_cleared"
    WISHLIST_ADDED = "wishlist_added"
    WISHLIST_REMOVED = "wishlist_removed"
    WISHLIST_CLEARED = "wishlist_cleared"
    MOVED_TO_CART = "moved_to_cart"


@dataclass(frozen=True)
class CommerceEvent:
    """Emitted once per state-changing operation, after commit."""
    kind: EventKind
    product_id: Optional[str]
    cart_item_count: int
    wishlist_count: int
    cart_total: Decimal
    persisted: bool = True


Observer = Callable[[CommerceEvent], Union[None, Awaitable[None]]]


_state_logger = get_logger("vaxdog.commerce.events")


def log_state_change(event: CommerceEvent) -> None:
    """Observer that writes each change to the log."""
    _state_logger.info(
        "%s product=%s cart_items=%d wishlist=%d total=%s%s",
        event.kind.value,
        sanitize_id_for_logging(event.product_id),
        event.cart_item_count,
        event.wishlist_count,
        event.cart_total,
        "" if event.persisted else " (not persisted)",
    )
