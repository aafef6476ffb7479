"""Flint & Flours storefront: cart sync engine and cart API."""

__version__ = "0.1.0"
