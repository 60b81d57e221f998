"""Tests for observers and storefront notices"""
import logging
import pytest
from decimal import Decimal
from unittest.mock import AsyncMock, Mock

from vaxdog.commerce import CommerceEngine, EventKind, MemoryStore, OperationStatus, describe, log_state_change
from vaxdog.commerce.results import OperationResult


class TestObservers:
    """Tests for engine.subscribe"""

    @pytest.mark.asyncio
    async def test_sync_and_async_observers(self, engine, bowl):
        """Test both callback styles receive the event"""
        sync_observer = Mock()
        async_observer = AsyncMock()
        engine.subscribe(sync_observer)
        engine.subscribe(async_observer)

        await engine.add_to_cart(bowl, 2)

        event = sync_observer.call_args.args[0]
        assert event.kind is EventKind.CART_ADDED
        assert event.product_id == "p2"
        assert event.cart_item_count == 2
        assert event.cart_total == Decimal("10")
        assert event.persisted is True
        async_observer.assert_awaited_once_with(event)

    @pytest.mark.asyncio
    async def test_rejections_do_not_notify(self, engine, leash, bowl):
        """Test only state changes are announced"""
        observer = Mock()
        engine.subscribe(observer)

        await engine.add_to_cart(leash, 5)
        await engine.remove_from_cart("missing")
        await engine.add_to_wishlist(bowl)
        await engine.add_to_wishlist(bowl)

        assert [c.args[0].kind for c in observer.call_args_list] == [EventKind.WISHLIST_ADDED]

    @pytest.mark.asyncio
    async def test_unsubscribe(self, engine, bowl):
        observer = Mock()
        unsubscribe = engine.subscribe(observer)
        unsubscribe()
        unsubscribe()

        await engine.add_to_cart(bowl)

        observer.assert_not_called()

    @pytest.mark.asyncio
    async def test_failing_observer_is_isolated(self, engine, bowl, caplog):
        """Test one broken observer does not affect the result or others"""
        broken = Mock(side_effect=RuntimeError("boom"))
        healthy = Mock()
        engine.subscribe(broken)
        engine.subscribe(healthy)

        with caplog.at_level(logging.ERROR):
            result = await engine.add_to_cart(bowl)

        assert result.status is OperationStatus.OK
        healthy.assert_called_once()
        assert "Observer" in caplog.text

    @pytest.mark.asyncio
    async def test_event_flags_unsaved_change(self, failing_store, bowl):
        engine = CommerceEngine(failing_store, layout="combined")
        observer = Mock()
        engine.subscribe(observer)

        await engine.add_to_cart(bowl)

        assert observer.call_args.args[0].persisted is False

    @pytest.mark.asyncio
    async def test_log_state_change_observer(self, bowl, caplog):
        engine = CommerceEngine(MemoryStore(), layout="combined")
        engine.subscribe(log_state_change)

        with caplog.at_level(logging.INFO, logger="vaxdog.commerce.events"):
            await engine.add_to_wishlist(bowl)

        assert "wishlist_added product=p2" in caplog.text


class TestDescribe:
    """Tests for toast notices"""

    @pytest.mark.asyncio
    async def test_added_and_updated(self, engine, bowl):
        added = describe(await engine.add_to_cart(bowl), "Bowl")
        updated = describe(await engine.add_to_cart(bowl), "Bowl")

        assert added.level == "success"
        assert added.title == "Added to cart!"
        assert added.description == "Bowl has been added to your cart."
        assert updated.title == "Updated quantity in cart!"
        assert updated.description == "Bowl quantity updated to 2."

    @pytest.mark.asyncio
    async def test_stock_exceeded(self, engine, leash):
        notice = describe(await engine.add_to_cart(leash, 3))

        assert notice.level == "error"
        assert notice.title == "Cannot add more items. Only 2 in stock."

    @pytest.mark.asyncio
    async def test_out_of_stock(self, engine):
        notice = describe(await engine.add_to_cart({"id": "z", "name": "Z", "price": 1, "stock": 0}))

        assert notice.title == "Product out of stock"

    @pytest.mark.asyncio
    async def test_already_in_wishlist(self, engine, bowl):
        await engine.add_to_wishlist(bowl)

        notice = describe(await engine.add_to_wishlist(bowl))

        assert notice.level == "info"
        assert notice.title == "Item already in wishlist"

    @pytest.mark.asyncio
    async def test_cleared_has_no_description(self, engine):
        notice = describe(await engine.clear_wishlist())

        assert notice.title == "Wishlist cleared"
        assert notice.description is None

    def test_noop_has_no_notice(self):
        assert describe(OperationResult(OperationStatus.NOOP, product_id="x")) is None

    @pytest.mark.asyncio
    async def test_unsaved_change_warns(self, failing_store, bowl):
        engine = CommerceEngine(failing_store, layout="combined")

        notice = describe(await engine.add_to_cart(bowl))

        assert notice.level == "warning"
        assert notice.description == "Store rejected write"
