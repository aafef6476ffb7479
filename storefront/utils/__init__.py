"""Utility helpers."""
from .api_errors import api_error, extract_api_error, register_error_handlers

__all__ = ["api_error", "extract_api_error", "register_error_handlers"]
