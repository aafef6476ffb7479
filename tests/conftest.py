"""Pytest configuration and fixtures"""
import asyncio
import os
from collections import defaultdict
from typing import Optional
from unittest.mock import AsyncMock, Mock

import pytest

# Set test environment variables
os.environ.setdefault("SUPABASE_URL", "https://test.supabase.co")
os.environ.setdefault("SUPABASE_SERVICE_ROLE_KEY", "test_key")
os.environ.setdefault("ENVIRONMENT", "test")

from storefront.cart import CartLine, CartSync, LocalCartStorage
from storefront.errors import CartSyncError

PRODUCT_1 = "11111111-1111-1111-1111-111111111111"
VARIANT_1 = "aaaaaaaa-aaaa-aaaa-aaaa-aaaaaaaaaaaa"
PRODUCT_2 = "22222222-2222-2222-2222-222222222222"
VARIANT_2 = "bbbbbbbb-bbbb-bbbb-bbbb-bbbbbbbbbbbb"
PRODUCT_3 = "33333333-3333-3333-3333-333333333333"
VARIANT_3 = "cccccccc-cccc-cccc-cccc-cccccccccccc"


def make_line(product_id=PRODUCT_1, variant_id=VARIANT_1, quantity=1, **kwargs) -> CartLine:
    fields = {
        "product_name": "Ragi Cookies",
        "variant_name": "200g",
        "price": "250.00",
        "discount_percent": "10",
    }
    fields.update(kwargs)
    return CartLine(product_id=product_id, variant_id=variant_id, quantity=quantity, **fields)


class FakeCartStore:
    """
    In-memory CartStore with the server contract of /api/cart.

    `gate` (an asyncio.Event) holds every call until set; `fail_ops` makes the
    named operations raise CartSyncError; `fail_after_ops` applies the named
    writes and then raises, like a gateway timeout after the commit;
    `active`/`max_active` track calls outstanding per key.
    """

    def __init__(self, lines=None):
        self.rows = {line.key: line for line in lines or []}
        self.calls = []
        self.gate: Optional[asyncio.Event] = None
        self.fail_ops = set()
        self.fail_after_ops = set()
        self.active = defaultdict(int)
        self.max_active = defaultdict(int)

    def quantities(self):
        return {key: line.quantity for key, line in self.rows.items()}

    def count(self, op):
        return sum(1 for call in self.calls if call[0] == op)

    async def _enter(self, op, key=None, quantity=None):
        self.calls.append((op, key, quantity))
        self.active[key] += 1
        self.max_active[key] = max(self.max_active[key], self.active[key])
        try:
            if self.gate is not None:
                await self.gate.wait()
            if op in self.fail_ops:
                raise CartSyncError(f"{op} failed", status_code=500)
        finally:
            self.active[key] -= 1

    def _leave(self, op):
        if op in self.fail_after_ops:
            raise CartSyncError("Gateway Timeout", status_code=504)

    async def fetch(self):
        await self._enter("fetch")
        return list(self.rows.values())

    async def upsert(self, product_id, variant_id, quantity):
        key = (product_id, variant_id)
        await self._enter("upsert", key, quantity)
        existing = self.rows.get(key)
        if existing is not None:
            self.rows[key] = existing.with_quantity(existing.quantity + quantity)
        else:
            self.rows[key] = make_line(product_id, variant_id, quantity)
        self._leave("upsert")

    async def update(self, product_id, variant_id, quantity):
        key = (product_id, variant_id)
        await self._enter("update", key, quantity)
        if key in self.rows:
            self.rows[key] = self.rows[key].with_quantity(quantity)
        self._leave("update")

    async def delete(self, product_id, variant_id):
        key = (product_id, variant_id)
        await self._enter("delete", key)
        self.rows.pop(key, None)
        self._leave("delete")


async def settle(rounds: int = 5):
    """Let scheduled tasks run up to their next suspension point."""
    for _ in range(rounds):
        await asyncio.sleep(0)


@pytest.fixture
def storage(tmp_path):
    """Client-local storage in a temp dir"""
    return LocalCartStorage(tmp_path / "cart.json")


@pytest.fixture
def cart(storage):
    """Cart engine with a short sync timeout"""
    return CartSync(storage, sync_timeout=1.0)


@pytest.fixture
def store():
    """Empty fake server cart"""
    return FakeCartStore()


@pytest.fixture
def mock_supabase_client():
    """Mock async Supabase client"""
    client = Mock()

    # Mock table operations (query builders chain, execute is awaited)
    table_mock = Mock()
    table_mock.select.return_value = table_mock
    table_mock.insert.return_value = table_mock
    table_mock.update.return_value = table_mock
    table_mock.delete.return_value = table_mock
    table_mock.eq.return_value = table_mock
    table_mock.limit.return_value = table_mock
    table_mock.order.return_value = table_mock
    table_mock.execute = AsyncMock(return_value=Mock(data=[]))

    client.table.return_value = table_mock
    client.auth = Mock()
    client.auth.get_user = AsyncMock()

    return client


@pytest.fixture
def mock_database(mock_supabase_client):
    """Database wired to the mock client"""
    from storefront.services.database import Database

    return Database(mock_supabase_client)


@pytest.fixture
def sample_cart_row():
    """cart_items row as returned by the joined select"""
    return {
        "id": "row-1",
        "product_id": PRODUCT_1,
        "variant_id": VARIANT_1,
        "quantity": 2,
        "product": [{
            "id": PRODUCT_1,
            "name": "Ragi Cookies",
            "slug": "ragi-cookies",
            "image_urls": ["https://cdn.example.com/ragi-1.jpg", "https://cdn.example.com/ragi-2.jpg"],
        }],
        "variant": {
            "id": VARIANT_1,
            "name": "200g",
            "slug": "200g",
            "price": 250,
            "discount_percent": 10,
            "stock": 12,
            "is_active": True,
        },
    }
