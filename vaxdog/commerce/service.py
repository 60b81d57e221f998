"""Cart and wishlist engine with write-through persistence."""
import asyncio
import inspect
from dataclasses import replace
from decimal import Decimal
from typing import Any, Callable, Optional

from vaxdog import config
from vaxdog.errors import ERROR_INVALID_QUANTITY, CommerceError, InvalidInputError, PersistenceError, StockExceededError
from vaxdog.logging import get_logger, sanitize_id_for_logging
from vaxdog.money import format_money, round_money, to_float

from .models import CartLine, WishlistEntry, normalize_product_id
from .observers import CommerceEvent, EventKind, Observer
from .persistence import CommerceState, StatePersistence
from .results import OperationResult, OperationStatus
from .snapshot import ProductSnapshot
from .storage import KeyValueStore, create_store

logger = get_logger(__name__)


def _coerce_id(product_id: Any) -> Optional[str]:
    try:
        return normalize_product_id(product_id)
    except ValueError:
        return None


def _require_quantity(quantity: Any, minimum: int = 1) -> int:
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < minimum:
        raise InvalidInputError(ERROR_INVALID_QUANTITY)
    return quantity


class CommerceEngine:
    """
    Owns one shopper's cart and wishlist.

    Lifecycle is initializing -> ready. State is read from the store once,
    on ``initialize()`` or lazily before the first mutation; only then do
    writes go through to the store. Every successful mutation replaces the
    in-memory state, writes it, then notifies observers.

    Rejections (invalid input, stock exceeded) come back as
    ``OperationResult`` values and leave both collections untouched. A failed
    write keeps the new in-memory state and is reported via
    ``result.persisted``.

    Loading happens once even when ``initialize()`` and the first mutation
    overlap. Beyond that, callers must serialize mutations.

    Usage:
        engine = create_engine(session_id)
        await engine.initialize()
        result = await engine.add_to_cart({"id": "p1", "name": "Leash", "price": 10})
        engine.cart_total
    """

    def __init__(
        self,
        store: KeyValueStore,
        layout: Optional[str] = None,
        default_stock_limit: Optional[int] = None,
        currency: Optional[str] = None,
    ) -> None:
        self.persistence = StatePersistence(store, layout or config.get_persistence_layout())
        self.default_stock_limit = (
            default_stock_limit if default_stock_limit is not None else config.get_default_stock_limit()
        )
        self.currency = currency or config.get_currency()
        self._state = CommerceState()
        self._ready = False
        self._init_lock = asyncio.Lock()
        self._observers: list[Observer] = []

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def is_ready(self) -> bool:
        return self._ready

    async def initialize(self) -> None:
        """
        Load persisted state. Corrupted data resets to empty silently.

        Raises:
            PersistenceError: If the store cannot be read at all
        """
        if self._ready:
            return
        async with self._init_lock:
            # Loaded by a concurrent caller while waiting
            if self._ready:
                return
            self._state = await self.persistence.load()
            self._ready = True

    async def _ensure_ready(self) -> None:
        if not self._ready:
            await self.initialize()

    # ------------------------------------------------------------------
    # Observers
    # ------------------------------------------------------------------

    def subscribe(self, observer: Observer) -> Callable[[], None]:
        """Register a sync or async callback; returns an unsubscribe function."""
        self._observers.append(observer)

        def unsubscribe() -> None:
            if observer in self._observers:
                self._observers.remove(observer)

        return unsubscribe

    async def _notify(self, kind: EventKind, product_id: Optional[str], persisted: bool) -> None:
        event = CommerceEvent(
            kind=kind,
            product_id=product_id,
            cart_item_count=self.cart_item_count,
            wishlist_count=self.wishlist_count,
            cart_total=self.cart_total,
            persisted=persisted,
        )
        for observer in list(self._observers):
            try:
                outcome = observer(event)
                if inspect.isawaitable(outcome):
                    await outcome
            except Exception:
                logger.error("Observer %r failed on %s", observer, kind.value, exc_info=True)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def cart_items(self) -> tuple[CartLine, ...]:
        return self._state.cart

    @property
    def wishlist_items(self) -> tuple[WishlistEntry, ...]:
        return self._state.wishlist

    @property
    def cart_total(self) -> Decimal:
        """Sum of unit price times quantity, recomputed on every access."""
        return sum((line.line_total for line in self._state.cart), Decimal("0"))

    @property
    def cart_item_count(self) -> int:
        return sum(line.quantity for line in self._state.cart)

    @property
    def wishlist_count(self) -> int:
        return len(self._state.wishlist)

    def get_cart_line(self, product_id: Any) -> Optional[CartLine]:
        key = _coerce_id(product_id)
        return next((line for line in self._state.cart if line.product_id == key), None)

    def get_wishlist_entry(self, product_id: Any) -> Optional[WishlistEntry]:
        key = _coerce_id(product_id)
        return next((entry for entry in self._state.wishlist if entry.product_id == key), None)

    def is_in_cart(self, product_id: Any) -> bool:
        return self.get_cart_line(product_id) is not None

    def is_in_wishlist(self, product_id: Any) -> bool:
        return self.get_wishlist_entry(product_id) is not None

    def cart_quantity_of(self, product_id: Any) -> int:
        line = self.get_cart_line(product_id)
        return line.quantity if line else 0

    def cart_summary(self) -> dict:
        """Cart summary for the cart drawer and checkout page."""
        if not self._state.cart:
            return {
                "is_empty": True,
                "total_items": 0,
                "items": [],
                "subtotal": 0.0,
                "formatted_subtotal": format_money(0, self.currency),
            }

        subtotal = self.cart_total
        return {
            "is_empty": False,
            "total_items": self.cart_item_count,
            "items": [
                {
                    "product_id": line.product_id,
                    "name": line.name,
                    "quantity": line.quantity,
                    "unit_price": to_float(line.unit_price),
                    "line_total": to_float(round_money(line.line_total)),
                    "image_url": line.image_url,
                    "stock_limit": line.effective_stock_limit(self.default_stock_limit),
                    "at_stock_limit": line.at_stock_limit(self.default_stock_limit),
                }
                for line in self._state.cart
            ],
            "subtotal": to_float(round_money(subtotal)),
            "formatted_subtotal": format_money(subtotal, self.currency),
        }

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _check_stock(self, product_id: str, stock_limit: Optional[int], quantity: int) -> None:
        limit = self.default_stock_limit if stock_limit is None else stock_limit
        if quantity > limit:
            raise StockExceededError(product_id, limit=limit, requested=quantity)

    def _cart_with(self, snapshot: ProductSnapshot, quantity: int) -> tuple[tuple[CartLine, ...], CartLine, EventKind]:
        """
        Cart after adding ``quantity`` of ``snapshot``; current state untouched.

        Raises:
            StockExceededError: If the resulting quantity is above the limit
        """
        cart = self._state.cart
        for index, line in enumerate(cart):
            if line.product_id == snapshot.product_id:
                new_quantity = line.quantity + quantity
                self._check_stock(line.product_id, line.stock_limit, new_quantity)
                updated = replace(line, quantity=new_quantity)
                return cart[:index] + (updated,) + cart[index + 1:], updated, EventKind.CART_UPDATED

        self._check_stock(snapshot.product_id, snapshot.stock_limit, quantity)
        line = snapshot.to_cart_line(quantity)
        return cart + (line,), line, EventKind.CART_ADDED

    async def _commit(
        self,
        state: CommerceState,
        kind: EventKind,
        result: OperationResult,
        cart_changed: bool,
        wishlist_changed: bool,
    ) -> OperationResult:
        self._state = state
        result = replace(result, event=kind)
        try:
            await self.persistence.save(state, cart_changed=cart_changed, wishlist_changed=wishlist_changed)
        except PersistenceError as e:
            logger.warning(
                "%s for %s kept in memory only: %s",
                kind.value,
                sanitize_id_for_logging(result.product_id),
                e,
            )
            result = result.with_persistence_failure(e)
        await self._notify(kind, result.product_id, result.persisted)
        return result

    def _rejected(self, error: CommerceError) -> OperationResult:
        result = OperationResult.from_error(error)
        if result.status is OperationStatus.STOCK_EXCEEDED:
            # Report the quantity the caller still has
            return replace(result, quantity=self.cart_quantity_of(result.product_id))
        return result

    # ------------------------------------------------------------------
    # Cart mutations
    # ------------------------------------------------------------------

    async def add_to_cart(self, product: Any, quantity: int = 1) -> OperationResult:
        """
        Add ``quantity`` units, merging into an existing line.

        Rejected with STOCK_EXCEEDED when the merged quantity is above the
        line's stock limit; the existing line keeps its quantity.
        """
        await self._ensure_ready()
        try:
            snapshot = ProductSnapshot.parse(product)
            quantity = _require_quantity(quantity)
            cart, line, kind = self._cart_with(snapshot, quantity)
        except (InvalidInputError, StockExceededError) as e:
            return self._rejected(e)

        result = OperationResult(OperationStatus.OK, product_id=line.product_id, quantity=line.quantity)
        state = CommerceState(cart=cart, wishlist=self._state.wishlist)
        return await self._commit(state, kind, result, cart_changed=True, wishlist_changed=False)

    async def remove_from_cart(self, product_id: Any) -> OperationResult:
        """Remove a line; NOOP when it is not in the cart."""
        await self._ensure_ready()
        key = _coerce_id(product_id)
        if key is None:
            return self._rejected(InvalidInputError())

        cart = tuple(line for line in self._state.cart if line.product_id != key)
        if len(cart) == len(self._state.cart):
            return OperationResult(OperationStatus.NOOP, product_id=key)

        result = OperationResult(OperationStatus.OK, product_id=key, quantity=0)
        state = CommerceState(cart=cart, wishlist=self._state.wishlist)
        return await self._commit(state, EventKind.CART_REMOVED, result, cart_changed=True, wishlist_changed=False)

    async def update_cart_quantity(self, product_id: Any, quantity: int) -> OperationResult:
        """
        Set a line's quantity. Zero or less removes the line.

        Rejected with STOCK_EXCEEDED above the line's limit, prior quantity kept.
        """
        await self._ensure_ready()
        key = _coerce_id(product_id)
        if key is None:
            return self._rejected(InvalidInputError())
        if isinstance(quantity, bool) or not isinstance(quantity, int):
            return self._rejected(InvalidInputError(ERROR_INVALID_QUANTITY, product_id=key))

        if quantity <= 0:
            return await self.remove_from_cart(key)

        cart = self._state.cart
        index = next((i for i, line in enumerate(cart) if line.product_id == key), None)
        if index is None:
            return OperationResult(OperationStatus.NOOP, product_id=key)

        line = cart[index]
        if line.quantity == quantity:
            return OperationResult(OperationStatus.NOOP, product_id=key, quantity=quantity)
        try:
            self._check_stock(key, line.stock_limit, quantity)
        except StockExceededError as e:
            return self._rejected(e)

        updated = replace(line, quantity=quantity)
        result = OperationResult(OperationStatus.OK, product_id=key, quantity=quantity)
        state = CommerceState(cart=cart[:index] + (updated,) + cart[index + 1:], wishlist=self._state.wishlist)
        return await self._commit(state, EventKind.CART_UPDATED, result, cart_changed=True, wishlist_changed=False)

    async def clear_cart(self) -> OperationResult:
        """Empty the cart; always written and announced, even when already empty."""
        await self._ensure_ready()
        result = OperationResult(OperationStatus.OK)
        state = CommerceState(cart=(), wishlist=self._state.wishlist)
        return await self._commit(state, EventKind.CART_CLEARED, result, cart_changed=True, wishlist_changed=False)

    # ------------------------------------------------------------------
    # Wishlist mutations
    # ------------------------------------------------------------------

    async def add_to_wishlist(self, product: Any) -> OperationResult:
        """Save a product; ALREADY_EXISTS when it is already saved."""
        await self._ensure_ready()
        try:
            snapshot = ProductSnapshot.parse(product)
        except InvalidInputError as e:
            return self._rejected(e)

        if self.is_in_wishlist(snapshot.product_id):
            return OperationResult.already_exists(snapshot.product_id)

        result = OperationResult(OperationStatus.OK, product_id=snapshot.product_id)
        state = CommerceState(
            cart=self._state.cart,
            wishlist=self._state.wishlist + (snapshot.to_wishlist_entry(),),
        )
        return await self._commit(state, EventKind.WISHLIST_ADDED, result, cart_changed=False, wishlist_changed=True)

    async def remove_from_wishlist(self, product_id: Any) -> OperationResult:
        """Remove a saved product; NOOP when absent."""
        await self._ensure_ready()
        key = _coerce_id(product_id)
        if key is None:
            return self._rejected(InvalidInputError())

        wishlist = tuple(entry for entry in self._state.wishlist if entry.product_id != key)
        if len(wishlist) == len(self._state.wishlist):
            return OperationResult(OperationStatus.NOOP, product_id=key)

        result = OperationResult(OperationStatus.OK, product_id=key)
        state = CommerceState(cart=self._state.cart, wishlist=wishlist)
        return await self._commit(state, EventKind.WISHLIST_REMOVED, result, cart_changed=False, wishlist_changed=True)

    async def move_to_cart(self, product_id: Any, quantity: int = 1) -> OperationResult:
        """
        Move a wishlist entry into the cart.

        The entry is removed only if the cart add succeeds; on STOCK_EXCEEDED
        both collections are left exactly as they were. Both sides change in
        one commit and one notification.
        """
        await self._ensure_ready()
        key = _coerce_id(product_id)
        try:
            if key is None:
                raise InvalidInputError()
            quantity = _require_quantity(quantity)
        except InvalidInputError as e:
            return self._rejected(e)

        entry = self.get_wishlist_entry(key)
        if entry is None:
            return OperationResult(OperationStatus.NOOP, product_id=key)

        try:
            cart, line, _ = self._cart_with(ProductSnapshot.parse(entry), quantity)
        except (InvalidInputError, StockExceededError) as e:
            return self._rejected(e)

        result = OperationResult(OperationStatus.OK, product_id=key, quantity=line.quantity)
        state = CommerceState(
            cart=cart,
            wishlist=tuple(item for item in self._state.wishlist if item.product_id != key),
        )
        return await self._commit(state, EventKind.MOVED_TO_CART, result, cart_changed=True, wishlist_changed=True)

    async def clear_wishlist(self) -> OperationResult:
        """Empty the wishlist unconditionally."""
        await self._ensure_ready()
        result = OperationResult(OperationStatus.OK)
        state = CommerceState(cart=self._state.cart, wishlist=())
        return await self._commit(
            state, EventKind.WISHLIST_CLEARED, result, cart_changed=False, wishlist_changed=True
        )

    async def flush(self) -> OperationResult:
        """Write the current state again, e.g. after a reported persistence failure."""
        await self._ensure_ready()
        result = OperationResult(OperationStatus.OK)
        try:
            await self.persistence.save(self._state)
        except PersistenceError as e:
            result = result.with_persistence_failure(e)
        return result


def create_engine(
    session_id: str = "default",
    store: Optional[KeyValueStore] = None,
    layout: Optional[str] = None,
) -> CommerceEngine:
    """
    Build an engine for one shopper session.

    The caller owns the returned engine; there is no module-level instance.
    """
    return CommerceEngine(store if store is not None else create_store(session_id), layout=layout)
