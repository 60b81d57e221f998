"""Commerce engine configuration read from the environment."""
import os

# Storage backends
BACKEND_MEMORY = "memory"
BACKEND_FILE = "file"
BACKEND_REDIS = "redis"
STORAGE_BACKENDS = (BACKEND_MEMORY, BACKEND_FILE, BACKEND_REDIS)

# Persistence layouts
LAYOUT_COMBINED = "combined"  # one record for cart + wishlist
LAYOUT_SPLIT = "split"  # legacy: separate cart/wishlist keys
PERSISTENCE_LAYOUTS = (LAYOUT_COMBINED, LAYOUT_SPLIT)

# Stock limit assumed when a product snapshot has none
DEFAULT_STOCK_LIMIT = 99

DEFAULT_CURRENCY = "INR"


class StorageKeys:
    """Fixed keys inside a session's key-value namespace."""

    CART = "cart"
    WISHLIST = "wishlist"
    STATE = "commerce"  # combined record

    @staticmethod
    def redis_key(prefix: str, session_id: str, key: str) -> str:
        return f"{prefix}:{session_id}:{key}"


def get_storage_backend() -> str:
    """Backend name from VAXDOG_STORAGE_BACKEND (memory, file, redis)."""
    backend = os.environ.get("VAXDOG_STORAGE_BACKEND", BACKEND_MEMORY).strip().lower()
    if backend not in STORAGE_BACKENDS:
        raise ValueError(
            f"VAXDOG_STORAGE_BACKEND must be one of {', '.join(STORAGE_BACKENDS)}, got {backend!r}"
        )
    return backend


def get_storage_dir() -> str:
    return os.environ.get("VAXDOG_STORAGE_DIR", ".vaxdog")


def get_storage_prefix() -> str:
    return os.environ.get("VAXDOG_STORAGE_PREFIX", "vaxdog")


def get_persistence_layout() -> str:
    """Layout name from VAXDOG_PERSISTENCE_LAYOUT (combined, split)."""
    layout = os.environ.get("VAXDOG_PERSISTENCE_LAYOUT", LAYOUT_COMBINED).strip().lower()
    if layout not in PERSISTENCE_LAYOUTS:
        raise ValueError(
            f"VAXDOG_PERSISTENCE_LAYOUT must be one of {', '.join(PERSISTENCE_LAYOUTS)}, got {layout!r}"
        )
    return layout


def get_default_stock_limit() -> int:
    raw = os.environ.get("VAXDOG_DEFAULT_STOCK_LIMIT")
    if raw is None or raw == "":
        return DEFAULT_STOCK_LIMIT
    try:
        value = int(raw)
    except ValueError as e:
        raise ValueError(f"VAXDOG_DEFAULT_STOCK_LIMIT must be an integer, got {raw!r}") from e
    if value < 1:
        raise ValueError("VAXDOG_DEFAULT_STOCK_LIMIT must be at least 1")
    return value


def get_currency() -> str:
    return os.environ.get("VAXDOG_CURRENCY", DEFAULT_CURRENCY).upper()


def get_redis_credentials() -> tuple[str, str]:
    """
    Upstash REST credentials.

    Raises:
        ValueError: If either variable is missing
    """
    url = os.environ.get("UPSTASH_REDIS_REST_URL", "")
    token = os.environ.get("UPSTASH_REDIS_REST_TOKEN", "")
    if not url or not token:
        raise ValueError("UPSTASH_REDIS_REST_URL and UPSTASH_REDIS_REST_TOKEN must be set")
    return url, token
