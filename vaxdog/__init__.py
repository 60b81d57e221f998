"""vaxdog storefront cart and wishlist state."""

__version__ = "0.1.0"
