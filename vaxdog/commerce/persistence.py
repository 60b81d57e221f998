"""Encoding of commerce state and write-through to a key-value store."""
import json
from dataclasses import dataclass
from typing import Callable, Iterable, Optional, TypeVar

from vaxdog.config import LAYOUT_COMBINED, LAYOUT_SPLIT, PERSISTENCE_LAYOUTS, StorageKeys
from vaxdog.errors import ERROR_STORE_REJECTED_WRITE, CorruptStateError, PersistenceError
from vaxdog.logging import get_logger

from .models import CartLine, WishlistEntry
from .storage import KeyValueStore

logger = get_logger(__name__)

STATE_VERSION = 1

T = TypeVar("T", CartLine, WishlistEntry)


@dataclass(frozen=True)
class CommerceState:
    """Cart and wishlist as one immutable value."""
    cart: tuple[CartLine, ...] = ()
    wishlist: tuple[WishlistEntry, ...] = ()

    def to_dict(self) -> dict:
        return {
            "version": STATE_VERSION,
            "cart": [line.to_dict() for line in self.cart],
            "wishlist": [entry.to_dict() for entry in self.wishlist],
        }


def _decode_items(data, key: str, factory: Callable[[dict], T]) -> tuple[T, ...]:
    if not isinstance(data, list):
        raise CorruptStateError(f"Expected a list under {key!r}, got {type(data).__name__}", key=key)
    items: list[T] = []
    seen: set[str] = set()
    for raw in data:
        try:
            item = factory(raw)
        except (KeyError, TypeError, ValueError) as e:
            raise CorruptStateError(f"Invalid element under {key!r}: {e!r}", key=key) from e
        if item.product_id in seen:
            raise CorruptStateError(f"Duplicate product id under {key!r}", key=key)
        seen.add(item.product_id)
        items.append(item)
    return tuple(items)


def _load_json(blob: bytes, key: str):
    try:
        return json.loads(blob)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise CorruptStateError(f"Undecodable JSON under {key!r}", key=key) from e


def decode_cart(blob: bytes) -> tuple[CartLine, ...]:
    """
    Raises:
        CorruptStateError: If the blob is not a valid list of cart lines
    """
    return _decode_items(_load_json(blob, StorageKeys.CART), StorageKeys.CART, CartLine.from_dict)


def decode_wishlist(blob: bytes) -> tuple[WishlistEntry, ...]:
    """
    Raises:
        CorruptStateError: If the blob is not a valid list of wishlist entries
    """
    return _decode_items(
        _load_json(blob, StorageKeys.WISHLIST), StorageKeys.WISHLIST, WishlistEntry.from_dict
    )


def encode_cart(lines: Iterable[CartLine]) -> bytes:
    return json.dumps([line.to_dict() for line in lines]).encode("utf-8")


def encode_wishlist(entries: Iterable[WishlistEntry]) -> bytes:
    return json.dumps([entry.to_dict() for entry in entries]).encode("utf-8")


def encode_state(state: CommerceState) -> bytes:
    return json.dumps(state.to_dict()).encode("utf-8")


class StatePersistence:
    """
    Reads commerce state once and writes it through on every mutation.

    Layouts:
    - combined: one record under ``commerce``; a move is a single write
    - split: ``cart`` and ``wishlist`` keys written independently, cart first
    """

    def __init__(self, store: KeyValueStore, layout: str = LAYOUT_COMBINED) -> None:
        if layout not in PERSISTENCE_LAYOUTS:
            raise ValueError(f"Unknown persistence layout: {layout!r}")
        self.store = store
        self.layout = layout
        # Keys whose stored blob is known to differ from memory
        self._pending: set[str] = set()
        self._legacy_keys: set[str] = set()

    @property
    def has_pending_writes(self) -> bool:
        return bool(self._pending)

    async def _read(self, key: str) -> Optional[bytes]:
        try:
            return await self.store.get(key)
        except Exception as e:
            logger.error("Failed to read %r from store: %s", key, type(e).__name__, exc_info=True)
            raise PersistenceError(f"Could not read {key!r}: {e}", key=key) from e

    def _recover(self, error: CorruptStateError, keys: Iterable[str]) -> None:
        # Repaired lazily by the next successful write
        logger.warning("Discarding corrupted persisted state: %s", error)
        self._pending.update(keys)

    async def _load_legacy(self) -> CommerceState:
        cart: tuple[CartLine, ...] = ()
        wishlist: tuple[WishlistEntry, ...] = ()

        cart_blob = await self._read(StorageKeys.CART)
        if cart_blob is not None:
            self._legacy_keys.add(StorageKeys.CART)
            try:
                cart = decode_cart(cart_blob)
            except CorruptStateError as e:
                self._recover(e, [StorageKeys.CART])

        wishlist_blob = await self._read(StorageKeys.WISHLIST)
        if wishlist_blob is not None:
            self._legacy_keys.add(StorageKeys.WISHLIST)
            try:
                wishlist = decode_wishlist(wishlist_blob)
            except CorruptStateError as e:
                self._recover(e, [StorageKeys.WISHLIST])

        return CommerceState(cart=cart, wishlist=wishlist)

    async def _load_combined(self) -> CommerceState:
        blob = await self._read(StorageKeys.STATE)
        if blob is None:
            state = await self._load_legacy()
            if self._legacy_keys:
                logger.info("Migrating legacy cart/wishlist keys to combined record")
                self._pending.add(StorageKeys.STATE)
            self._pending.difference_update({StorageKeys.CART, StorageKeys.WISHLIST})
            return state

        try:
            record = _load_json(blob, StorageKeys.STATE)
            if not isinstance(record, dict):
                raise CorruptStateError("Combined record is not an object", key=StorageKeys.STATE)
        except CorruptStateError as e:
            self._recover(e, [StorageKeys.STATE])
            return CommerceState()

        cart: tuple[CartLine, ...] = ()
        wishlist: tuple[WishlistEntry, ...] = ()
        try:
            cart = _decode_items(record.get("cart", []), StorageKeys.CART, CartLine.from_dict)
        except CorruptStateError as e:
            self._recover(e, [StorageKeys.STATE])
        try:
            wishlist = _decode_items(
                record.get("wishlist", []), StorageKeys.WISHLIST, WishlistEntry.from_dict
            )
        except CorruptStateError as e:
            self._recover(e, [StorageKeys.STATE])
        return CommerceState(cart=cart, wishlist=wishlist)

    async def load(self) -> CommerceState:
        """
        Read persisted state; corrupted collections come back empty.

        Raises:
            PersistenceError: If the store itself cannot be read
        """
        if self.layout == LAYOUT_SPLIT:
            state = await self._load_legacy()
            self._legacy_keys.clear()
            return state
        return await self._load_combined()

    async def _write(self, key: str, blob: bytes) -> None:
        try:
            accepted = await self.store.set(key, blob)
        except Exception as e:
            logger.error("Failed to write %r to store: %s", key, type(e).__name__, exc_info=True)
            raise PersistenceError(f"Could not write {key!r}: {e}", key=key) from e
        if not accepted:
            logger.error("Store rejected write of %r", key)
            raise PersistenceError(ERROR_STORE_REJECTED_WRITE, key=key)

    async def save(
        self,
        state: CommerceState,
        cart_changed: bool = True,
        wishlist_changed: bool = True,
    ) -> None:
        """
        Write the changed parts of ``state`` plus anything still pending.

        Raises:
            PersistenceError: On the first failed write; remaining keys stay
                pending and are retried by the next save
        """
        if self.layout == LAYOUT_COMBINED:
            self._pending.add(StorageKeys.STATE)
            await self._write(StorageKeys.STATE, encode_state(state))
            self._pending.discard(StorageKeys.STATE)
            await self._drop_legacy_keys()
            return

        if cart_changed:
            self._pending.add(StorageKeys.CART)
        if wishlist_changed:
            self._pending.add(StorageKeys.WISHLIST)

        # Cart before wishlist: an interrupted move leaves a duplicate, never a loss
        if StorageKeys.CART in self._pending:
            await self._write(StorageKeys.CART, encode_cart(state.cart))
            self._pending.discard(StorageKeys.CART)
        if StorageKeys.WISHLIST in self._pending:
            await self._write(StorageKeys.WISHLIST, encode_wishlist(state.wishlist))
            self._pending.discard(StorageKeys.WISHLIST)

    async def _drop_legacy_keys(self) -> None:
        # Keys that fail to delete stay listed and are retried after the next write
        for key in sorted(self._legacy_keys):
            try:
                await self.store.delete(key)
            except Exception as e:
                logger.warning("Could not delete legacy key %r: %s", key, type(e).__name__)
            else:
                self._legacy_keys.discard(key)
