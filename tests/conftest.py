"""Pytest configuration and fixtures"""
import os
import pytest
from unittest.mock import AsyncMock

# Tests never touch real storage
os.environ.setdefault("VAXDOG_STORAGE_BACKEND", "memory")
os.environ.setdefault("VAXDOG_PERSISTENCE_LAYOUT", "combined")

from vaxdog.commerce import CommerceEngine, MemoryStore  # noqa: E402


@pytest.fixture
def store():
    """Empty in-memory store"""
    return MemoryStore()


@pytest.fixture
def engine(store):
    """Engine over the shared in-memory store, combined layout"""
    return CommerceEngine(store, layout="combined", default_stock_limit=99, currency="INR")


@pytest.fixture
def split_engine(store):
    """Engine using the legacy cart/wishlist keys"""
    return CommerceEngine(store, layout="split", default_stock_limit=99, currency="INR")


@pytest.fixture
def failing_store():
    """Store whose writes are rejected"""
    store = MemoryStore()
    store.set = AsyncMock(return_value=False)
    return store


@pytest.fixture
def leash():
    """Product with a small stock limit"""
    return {"id": "p1", "name": "Leash", "price": 10, "stockLimit": 2}


@pytest.fixture
def bowl():
    """Product without stock limit"""
    return {"id": "p2", "name": "Bowl", "price": 5}


@pytest.fixture
def collar():
    """Product with a single unit in stock"""
    return {"id": "p3", "name": "Collar", "price": "12.50", "stockLimit": 1}


@pytest.fixture
def sample_product():
    """Storefront-shaped product dict"""
    return {
        "id": 101,
        "name": "Anti-tick Shampoo",
        "price": 349.0,
        "image": "https://cdn.example.com/shampoo.png",
        "petType": "dog",
        "stock": 15,
        "description": "Gentle formula",
    }
