"""Commerce package: cart/wishlist models, storage, and engine."""
from .messages import Notice, describe
from .models import CartLine, WishlistEntry, normalize_product_id
from .observers import CommerceEvent, EventKind, log_state_change
from .persistence import CommerceState, StatePersistence
from .results import OperationResult, OperationStatus
from .service import CommerceEngine, create_engine
from .snapshot import ProductSnapshot
from .storage import FileStore, KeyValueStore, MemoryStore, RedisStore, create_store

__all__ = [
    "CartLine",
    "CommerceEngine",
    "CommerceEvent",
    "CommerceState",
    "EventKind",
    "FileStore",
    "KeyValueStore",
    "MemoryStore",
    "Notice",
    "OperationResult",
    "OperationStatus",
    "ProductSnapshot",
    "RedisStore",
    "StatePersistence",
    "WishlistEntry",
    "create_engine",
    "create_store",
    "describe",
    "log_state_change",
    "normalize_product_id",
]
