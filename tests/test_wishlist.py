"""
Tests for wishlist operations and moving items to the cart
"""

import pytest

from vaxdog.commerce import EventKind, OperationStatus


class TestWishlist:
    """Tests for add/remove/clear wishlist."""

    @pytest.mark.asyncio
    async def test_duplicate_add_reports_already_exists(self, engine, bowl):
        """Test the second add of the same product is a reported no-op."""
        first = await engine.add_to_wishlist(bowl)
        second = await engine.add_to_wishlist(bowl)

        assert first.status is OperationStatus.OK
        assert second.status is OperationStatus.ALREADY_EXISTS
        assert second.ok
        assert second.message == "Item already in wishlist"
        assert [entry.product_id for entry in engine.wishlist_items] == ["p2"]
        assert engine.wishlist_count == 1

    @pytest.mark.asyncio
    async def test_invalid_snapshot_rejected(self, engine):
        """Test validation matches add_to_cart."""
        result = await engine.add_to_wishlist({"id": "w1", "name": "Treats"})

        assert result.status is OperationStatus.INVALID_INPUT
        assert engine.wishlist_count == 0

    @pytest.mark.asyncio
    async def test_out_of_stock_entry(self, engine):
        """Test entries keep the binary stock flag."""
        await engine.add_to_wishlist({"id": "w2", "name": "Crate", "price": 80, "stock": 0})

        entry = engine.get_wishlist_entry("w2")
        assert entry.in_stock is False

    @pytest.mark.asyncio
    async def test_remove(self, engine, bowl, leash):
        """Test removing an entry keeps the others in order."""
        await engine.add_to_wishlist(bowl)
        await engine.add_to_wishlist(leash)

        result = await engine.remove_from_wishlist("p2")

        assert result.status is OperationStatus.OK
        assert not engine.is_in_wishlist("p2")
        assert engine.is_in_wishlist("p1")

    @pytest.mark.asyncio
    async def test_remove_absent_is_noop(self, engine):
        """Test removing an absent entry."""
        result = await engine.remove_from_wishlist("missing")

        assert result.status is OperationStatus.NOOP

    @pytest.mark.asyncio
    async def test_clear(self, engine, bowl, leash):
        """Test clearing the wishlist leaves the cart alone."""
        await engine.add_to_wishlist(bowl)
        await engine.add_to_cart(leash)

        result = await engine.clear_wishlist()

        assert result.event is EventKind.WISHLIST_CLEARED
        assert engine.wishlist_items == ()
        assert engine.is_in_cart("p1")

    @pytest.mark.asyncio
    async def test_wishlist_and_cart_are_independent(self, engine, bowl):
        """Test a product may be in both collections."""
        await engine.add_to_cart(bowl)
        await engine.add_to_wishlist(bowl)

        assert engine.is_in_cart("p2")
        assert engine.is_in_wishlist("p2")


class TestMoveToCart:
    """Tests for move_to_cart."""

    @pytest.mark.asyncio
    async def test_move_without_limit(self, engine, bowl):
        """Test moving removes from wishlist and adds to cart."""
        await engine.add_to_wishlist(bowl)

        result = await engine.move_to_cart("p2", 1)

        assert result.status is OperationStatus.OK
        assert result.event is EventKind.MOVED_TO_CART
        assert engine.cart_quantity_of("p2") == 1
        assert not engine.is_in_wishlist("p2")

    @pytest.mark.asyncio
    async def test_move_over_limit_keeps_both_untouched(self, engine, collar):
        """Test a rejected move leaves wishlist and cart as they were."""
        await engine.add_to_wishlist(collar)
        wishlist_before = engine.wishlist_items
        cart_before = engine.cart_items

        result = await engine.move_to_cart("p3", 5)

        assert result.status is OperationStatus.STOCK_EXCEEDED
        assert engine.wishlist_items == wishlist_before
        assert engine.cart_items == cart_before
        assert engine.is_in_wishlist("p3")
        assert not engine.is_in_cart("p3")

    @pytest.mark.asyncio
    async def test_move_merges_into_existing_line(self, engine, leash):
        """Test moving a product already in the cart adds to its quantity."""
        await engine.add_to_cart(leash, 1)
        await engine.add_to_wishlist(leash)

        result = await engine.move_to_cart("p1", 1)

        assert result.quantity == 2
        assert len(engine.cart_items) == 1
        assert not engine.is_in_wishlist("p1")

    @pytest.mark.asyncio
    async def test_move_merge_over_limit(self, engine, leash):
        """Test the existing line's limit applies to a merge by move."""
        await engine.add_to_cart(leash, 2)
        await engine.add_to_wishlist(leash)

        result = await engine.move_to_cart("p1", 1)

        assert result.status is OperationStatus.STOCK_EXCEEDED
        assert engine.cart_quantity_of("p1") == 2
        assert engine.is_in_wishlist("p1")

    @pytest.mark.asyncio
    async def test_move_absent_is_noop(self, engine):
        """Test moving an id that is not in the wishlist."""
        result = await engine.move_to_cart("ghost")

        assert result.status is OperationStatus.NOOP
        assert engine.cart_items == ()

    @pytest.mark.asyncio
    async def test_move_invalid_quantity(self, engine, bowl):
        """Test quantity validation on move."""
        await engine.add_to_wishlist(bowl)

        result = await engine.move_to_cart("p2", 0)

        assert result.status is OperationStatus.INVALID_INPUT
        assert engine.is_in_wishlist("p2")

    @pytest.mark.asyncio
    async def test_move_is_single_write_and_event(self, engine, bowl, store):
        """Test both sides are committed together."""
        await engine.add_to_wishlist(bowl)
        events = []
        engine.subscribe(events.append)
        writes = []
        original_set = store.set

        async def recording_set(key, value):
            writes.append(key)
            return await original_set(key, value)

        store.set = recording_set

        await engine.move_to_cart("p2")

        assert writes == ["commerce"]
        assert len(events) == 1
        assert events[0].kind is EventKind.MOVED_TO_CART
        assert events[0].cart_item_count == 1
        assert events[0].wishlist_count == 0

    @pytest.mark.asyncio
    async def test_moved_line_keeps_snapshot(self, engine, sample_product):
        """Test the cart line carries the wishlist entry's data."""
        await engine.add_to_wishlist(sample_product)

        await engine.move_to_cart(101, 3)

        line = engine.get_cart_line("101")
        assert line.name == "Anti-tick Shampoo"
        assert line.stock_limit == 15
        assert line.category == "dog"
        assert line.quantity == 3
