"""Cart and wishlist models with Decimal-based pricing."""
import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Optional

from vaxdog.config import DEFAULT_STOCK_LIMIT
from vaxdog.money import multiply, parse_money


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


def normalize_product_id(value: Any) -> str:
    """
    Canonical string form of a catalog identity.

    ``5``, ``5.0`` and ``"5"`` all map to ``"5"``; ``5.5`` and
    ``Decimal("5.50")`` both map to ``"5.5"``.

    Raises:
        ValueError: For None, empty strings, booleans and non-finite numbers
    """
    if value is None or isinstance(value, bool):
        raise ValueError("product id is required")
    if isinstance(value, float):
        if not math.isfinite(value):
            raise ValueError("product id must be finite")
        value = Decimal(repr(value))
    if isinstance(value, Decimal):
        if not value.is_finite():
            raise ValueError("product id must be finite")
        if value == value.to_integral_value():
            value = int(value)
        else:
            value = format(value.normalize(), "f")
    product_id = str(value)
    if not product_id:
        raise ValueError("product id is required")
    return product_id


def _optional_str(data: dict, key: str) -> Optional[str]:
    value = data.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise TypeError(f"{key} must be a string")
    return value


def _optional_stock_limit(data: dict) -> Optional[int]:
    value = data.get("stock_limit")
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ValueError("stock_limit must be a non-negative integer")
    return value


def _required_name(data: dict) -> str:
    name = data["name"]
    if not isinstance(name, str) or not name.strip():
        raise ValueError("name must be a non-empty string")
    return name


def _required_price(data: dict) -> Decimal:
    price = parse_money(data["unit_price"])
    if price < 0:
        raise ValueError("unit_price must be non-negative")
    return price


@dataclass(frozen=True)
class WishlistEntry:
    """Product saved for later."""
    product_id: str
    name: str
    unit_price: Decimal
    image_url: Optional[str] = None
    category: Optional[str] = None
    stock_limit: Optional[int] = None
    added_at: str = field(default_factory=_utc_now)

    @property
    def in_stock(self) -> bool:
        """Only an explicit zero limit means out of stock."""
        return self.stock_limit != 0

    def to_dict(self) -> dict:
        """Convert to dictionary for storage."""
        return {
            "product_id": self.product_id,
            "name": self.name,
            "unit_price": str(self.unit_price),
            "image_url": self.image_url,
            "category": self.category,
            "stock_limit": self.stock_limit,
            "added_at": self.added_at,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "WishlistEntry":
        """
        Create from a stored dictionary.

        Raises:
            KeyError, TypeError, ValueError: If the record is malformed
        """
        if not isinstance(data, dict):
            raise TypeError("wishlist entry must be an object")
        return cls(
            product_id=normalize_product_id(data["product_id"]),
            name=_required_name(data),
            unit_price=_required_price(data),
            image_url=_optional_str(data, "image_url"),
            category=_optional_str(data, "category"),
            stock_limit=_optional_stock_limit(data),
            added_at=_optional_str(data, "added_at") or _utc_now(),
        )


@dataclass(frozen=True)
class CartLine:
    """Single product line in the cart."""
    product_id: str
    name: str
    unit_price: Decimal
    quantity: int
    image_url: Optional[str] = None
    category: Optional[str] = None
    stock_limit: Optional[int] = None
    added_at: str = field(default_factory=_utc_now)

    def effective_stock_limit(self, default: int = DEFAULT_STOCK_LIMIT) -> int:
        """Purchasable maximum; a missing limit falls back to ``default``."""
        return default if self.stock_limit is None else self.stock_limit

    def at_stock_limit(self, default: int = DEFAULT_STOCK_LIMIT) -> bool:
        return self.quantity >= self.effective_stock_limit(default)

    @property
    def line_total(self) -> Decimal:
        """Unit price times quantity."""
        return multiply(self.unit_price, self.quantity)

    def to_dict(self) -> dict:
        """Convert to dictionary for storage."""
        return {
            "product_id": self.product_id,
            "name": self.name,
            "unit_price": str(self.unit_price),
            "quantity": self.quantity,
            "image_url": self.image_url,
            "category": self.category,
            "stock_limit": self.stock_limit,
            "added_at": self.added_at,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "CartLine":
        """
        Create from a stored dictionary.

        Raises:
            KeyError, TypeError, ValueError: If the record is malformed or
                its quantity is outside ``[1, stock_limit]``
        """
        if not isinstance(data, dict):
            raise TypeError("cart line must be an object")
        quantity = data["quantity"]
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
            raise ValueError("quantity must be a positive integer")
        stock_limit = _optional_stock_limit(data)
        if stock_limit is not None and quantity > stock_limit:
            raise ValueError(f"quantity {quantity} exceeds stock limit {stock_limit}")
        return cls(
            product_id=normalize_product_id(data["product_id"]),
            name=_required_name(data),
            unit_price=_required_price(data),
            quantity=quantity,
            image_url=_optional_str(data, "image_url"),
            category=_optional_str(data, "category"),
            stock_limit=stock_limit,
            added_at=_optional_str(data, "added_at") or _utc_now(),
        )
