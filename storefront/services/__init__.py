"""Data access and shared services."""
