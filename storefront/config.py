"""
Runtime configuration from environment variables.

Server side needs the Supabase credentials; the cart client needs the cart API
base URL and a place for its local copy.
"""
import os
from pathlib import Path
from typing import Optional

ENVIRONMENT = os.environ.get("ENVIRONMENT", "development")

# Supabase (server side, service role bypasses RLS; queries filter by user_id)
SUPABASE_URL = os.environ.get("SUPABASE_URL", "")
SUPABASE_SERVICE_ROLE_KEY = os.environ.get("SUPABASE_SERVICE_ROLE_KEY", "")

# Cart client
CART_API_URL = os.environ.get("CART_API_URL", "http://localhost:8000")
CART_STORAGE_PATH = os.environ.get(
    "CART_STORAGE_PATH", str(Path.home() / ".flint_flours" / "cart.json")
)
CART_SYNC_TIMEOUT = float(os.environ.get("CART_SYNC_TIMEOUT", "10"))

# Browser origins allowed to call the API
CORS_ORIGINS = [
    origin.strip()
    for origin in os.environ.get("CORS_ORIGINS", "http://localhost:3000").split(",")
    if origin.strip()
]


def create_cart_sync(storage_path: Optional[str] = None):
    """Build the per-session cart engine with configured storage and timeout."""
    from storefront.cart import CartSync, LocalCartStorage

    storage = LocalCartStorage(storage_path or CART_STORAGE_PATH)
    return CartSync(storage, sync_timeout=CART_SYNC_TIMEOUT)


def create_cart_store(access_token: str, base_url: Optional[str] = None):
    """HTTP cart store for a signed-in user's access token."""
    from storefront.cart import HttpCartStore

    return HttpCartStore(base_url or CART_API_URL, access_token, timeout=CART_SYNC_TIMEOUT)
