"""
Cart Router

Server-persisted cart of the signed-in shopper (table cart_items).

- GET    /api/cart  list lines (anonymous callers get an empty list)
- POST   /api/cart  add quantity to a line, inserting it if missing
- PUT    /api/cart  set a line's quantity
- DELETE /api/cart  remove a line (productId, variantId query params)
"""
from typing import Optional

from fastapi import APIRouter, Depends, Query

from storefront.auth import AuthUser, get_optional_user, verify_supabase_auth
from storefront.errors import ERROR_CART_KEYS_REQUIRED, ERROR_UNKNOWN
from storefront.logging import get_logger, sanitize_id_for_logging
from storefront.services.database import get_database
from storefront.utils.api_errors import api_error
from .models import CartItemRequest

logger = get_logger(__name__)

router = APIRouter(prefix="/api", tags=["cart"])


def _storage_error(action: str, user: AuthUser, e: Exception):
    logger.error(f"Failed to {action} for user {sanitize_id_for_logging(user.id)}: {e}", exc_info=True)
    return api_error(str(e) or ERROR_UNKNOWN, 500)


@router.get("/cart")
async def get_cart(user: Optional[AuthUser] = Depends(get_optional_user)):
    """Get the user's cart lines with product and variant details."""
    if user is None:
        return {"items": []}

    db = get_database()
    try:
        lines = await db.get_cart_items(user.id)
    except Exception as e:
        return _storage_error("load cart", user, e)

    return {"items": [line.to_dict() for line in lines]}


@router.post("/cart")
async def add_cart_item(request: CartItemRequest, user: AuthUser = Depends(verify_supabase_auth)):
    """Add `quantity` units of a variant to the cart."""
    db = get_database()
    try:
        await db.add_cart_item(user.id, str(request.product_id), str(request.variant_id), request.quantity)
    except Exception as e:
        return _storage_error("add cart item", user, e)

    return {"success": True}


@router.put("/cart")
async def update_cart_item(request: CartItemRequest, user: AuthUser = Depends(verify_supabase_auth)):
    """Set the quantity of a cart line."""
    db = get_database()
    try:
        await db.set_cart_item_quantity(
            user.id, str(request.product_id), str(request.variant_id), request.quantity
        )
    except Exception as e:
        return _storage_error("update cart item", user, e)

    return {"success": True}


@router.delete("/cart")
async def remove_cart_item(
    product_id: Optional[str] = Query(None, alias="productId"),
    variant_id: Optional[str] = Query(None, alias="variantId"),
    user: AuthUser = Depends(verify_supabase_auth),
):
    """Remove a cart line. Removing a missing line succeeds."""
    if not product_id or not variant_id:
        return api_error(ERROR_CART_KEYS_REQUIRED, 400)

    db = get_database()
    try:
        await db.delete_cart_item(user.id, product_id, variant_id)
    except Exception as e:
        return _storage_error("remove cart item", user, e)

    return {"success": True}
