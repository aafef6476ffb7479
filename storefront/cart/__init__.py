"""Cart package: line model, state transitions, storage, server store and sync engine."""
from .models import CartKey, CartLine, make_key
from .remote import CartStore, HttpCartStore
from .service import CartSync
from .storage import LocalCartStorage

__all__ = [
    "CartKey",
    "CartLine",
    "make_key",
    "CartStore",
    "HttpCartStore",
    "CartSync",
    "LocalCartStorage",
]
