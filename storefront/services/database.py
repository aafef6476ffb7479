"""
Supabase Database Service

Provides the Database facade over the repositories.

Usage:
    from storefront.services.database import get_database

    # At FastAPI startup (lifespan):
    await init_database()

    db = get_database()
    lines = await db.get_cart_items(user_id)
"""

from typing import List, Optional

from supabase._async.client import AsyncClient

from storefront.cart.models import CartLine
from storefront.db import get_supabase, reset_supabase
from storefront.logging import get_logger
from storefront.services.repositories import CartRepository

logger = get_logger(__name__)


class Database:
    """
    Supabase database client with cart and auth operations.

    Must be built through `create()` or `init_database()`.
    """

    def __init__(self, client: AsyncClient):
        self.client = client
        self._cart_repo = CartRepository(self.client)

    @classmethod
    async def create(cls) -> "Database":
        """Async factory: create the Supabase client and repositories."""
        client = await get_supabase()
        return cls(client)

    # ==================== AUTH ====================

    async def get_user_id_from_token(self, access_token: str) -> Optional[str]:
        """Resolve a Supabase access token to its user id, or None if invalid."""
        try:
            response = await self.client.auth.get_user(access_token)
        except Exception as e:
            logger.warning(f"Access token rejected: {e}")
            return None
        user = getattr(response, "user", None) if response else None
        return str(user.id) if user and user.id else None

    # ==================== CART OPERATIONS (delegated) ====================

    async def get_cart_items(self, user_id: str) -> List[CartLine]:
        return await self._cart_repo.get_items(user_id)

    async def add_cart_item(self, user_id: str, product_id: str, variant_id: str, quantity: int) -> None:
        await self._cart_repo.add_item(user_id, product_id, variant_id, quantity)

    async def set_cart_item_quantity(self, user_id: str, product_id: str, variant_id: str, quantity: int) -> None:
        await self._cart_repo.set_quantity(user_id, product_id, variant_id, quantity)

    async def delete_cart_item(self, user_id: str, product_id: str, variant_id: str) -> None:
        await self._cart_repo.delete_item(user_id, product_id, variant_id)


# Singleton
_db: Optional[Database] = None


async def init_database() -> Database:
    """Initialize the database singleton. Called from FastAPI lifespan."""
    global _db
    if _db is not None:
        return _db

    _db = await Database.create()
    logger.info("Database initialized")
    return _db


async def close_database() -> None:
    """Drop the database singleton at shutdown."""
    global _db
    _db = None
    reset_supabase()


def get_database() -> Database:
    """
    Get database instance (sync accessor).

    Raises:
        RuntimeError: If init_database() has not run
    """
    if _db is None:
        raise RuntimeError("Database not initialized. Call 'await init_database()' at startup.")
    return _db
