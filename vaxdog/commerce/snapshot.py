"""Validated product snapshot accepted at the engine boundary."""
from collections.abc import Mapping
from decimal import Decimal
from typing import Any, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, field_validator

from vaxdog.errors import ERROR_INVALID_PRODUCT, InvalidInputError

from .models import CartLine, WishlistEntry, normalize_product_id


class ProductSnapshot(BaseModel):
    """
    Product data as shown by the catalog at the moment of the call.

    The engine trusts this snapshot; it never re-checks the catalog.
    Field names from the storefront (``id``, ``price``, ``imageUrl``,
    ``petType``, ``stock``) are accepted as aliases.
    """

    model_config = ConfigDict(
        extra="ignore",
        frozen=True,
        from_attributes=True,
        populate_by_name=True,
    )

    product_id: str = Field(
        validation_alias=AliasChoices("product_id", "productId", "id", "identity"),
    )
    name: str
    unit_price: Decimal = Field(
        ge=0,
        allow_inf_nan=False,
        validation_alias=AliasChoices("unit_price", "unitPrice", "price"),
    )
    image_url: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("image_url", "imageUrl", "image"),
    )
    category: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("category", "pet_type", "petType"),
    )
    stock_limit: Optional[int] = Field(
        default=None,
        ge=0,
        validation_alias=AliasChoices("stock_limit", "stockLimit", "stock"),
    )

    @field_validator("product_id", mode="before")
    @classmethod
    def _normalize_product_id(cls, value: Any) -> str:
        return normalize_product_id(value)

    @field_validator("name")
    @classmethod
    def _require_name(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("name must not be blank")
        return value

    @field_validator("unit_price", "stock_limit", mode="before")
    @classmethod
    def _reject_bool(cls, value: Any) -> Any:
        if isinstance(value, bool):
            raise ValueError("boolean is not a number")
        return value

    @field_validator("image_url", "category", mode="before")
    @classmethod
    def _blank_to_none(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @classmethod
    def parse(cls, value: Any) -> "ProductSnapshot":
        """
        Build a snapshot from a mapping, a snapshot, or an attribute-bearing object.

        Raises:
            InvalidInputError: If identity, name or price is missing or invalid
        """
        if isinstance(value, cls):
            return value
        if value is None:
            raise InvalidInputError()
        try:
            if isinstance(value, Mapping):
                return cls.model_validate(dict(value))
            return cls.model_validate(value, from_attributes=True)
        except ValidationError as e:
            fields = sorted({".".join(str(p) for p in err["loc"]) or "product" for err in e.errors()})
            raise InvalidInputError(f"{ERROR_INVALID_PRODUCT}: {', '.join(fields)}") from e

    def to_cart_line(self, quantity: int) -> CartLine:
        return CartLine(
            product_id=self.product_id,
            name=self.name,
            unit_price=self.unit_price,
            quantity=quantity,
            image_url=self.image_url,
            category=self.category,
            stock_limit=self.stock_limit,
        )

    def to_wishlist_entry(self) -> WishlistEntry:
        return WishlistEntry(
            product_id=self.product_id,
            name=self.name,
            unit_price=self.unit_price,
            image_url=self.image_url,
            category=self.category,
            stock_limit=self.stock_limit,
        )
