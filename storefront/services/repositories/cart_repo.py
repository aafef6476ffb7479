"""Cart Repository - cart_items operations.

All methods use async/await with supabase-py v2. Rows are always filtered by
user_id because the service-role client bypasses row level security.
"""
from typing import List

from .base import BaseRepository
from storefront.cart.models import CartLine
from storefront.services.models import CartItemRow

CART_ITEMS_SELECT = """
    id,
    product_id,
    variant_id,
    quantity,
    product:products!inner(id, name, slug, image_urls),
    variant:product_variants!inner(id, name, slug, price, discount_percent, stock, is_active)
"""


class CartRepository(BaseRepository):
    """Cart item database operations."""

    TABLE = "cart_items"

    async def get_items(self, user_id: str) -> List[CartLine]:
        """Get the user's cart lines with product/variant details, newest first."""
        result = await self.client.table(self.TABLE).select(CART_ITEMS_SELECT).eq(
            "user_id", user_id
        ).order("created_at", desc=True).execute()

        return [CartItemRow(**row).to_line() for row in result.data or []]

    async def add_item(self, user_id: str, product_id: str, variant_id: str, quantity: int) -> None:
        """Add quantity to an existing row, or insert a new one."""
        existing = await self.client.table(self.TABLE).select("id, quantity").eq(
            "user_id", user_id
        ).eq("product_id", product_id).eq("variant_id", variant_id).limit(1).execute()

        if existing.data:
            row = existing.data[0]
            await self.client.table(self.TABLE).update({
                "quantity": row["quantity"] + quantity
            }).eq("id", row["id"]).execute()
        else:
            await self.client.table(self.TABLE).insert({
                "user_id": user_id,
                "product_id": product_id,
                "variant_id": variant_id,
                "quantity": quantity,
            }).execute()

    async def set_quantity(self, user_id: str, product_id: str, variant_id: str, quantity: int) -> None:
        """Set absolute quantity; quantity <= 0 deletes the row."""
        if quantity <= 0:
            await self.delete_item(user_id, product_id, variant_id)
            return

        await self.client.table(self.TABLE).update({"quantity": quantity}).eq(
            "user_id", user_id
        ).eq("product_id", product_id).eq("variant_id", variant_id).execute()

    async def delete_item(self, user_id: str, product_id: str, variant_id: str) -> None:
        """Delete a row. Deleting a missing row succeeds."""
        await self.client.table(self.TABLE).delete().eq(
            "user_id", user_id
        ).eq("product_id", product_id).eq("variant_id", variant_id).execute()
