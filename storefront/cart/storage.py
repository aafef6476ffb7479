"""Client-local cart persistence (JSON file standing in for browser storage)."""
import json
import os
import tempfile
from pathlib import Path
from typing import List

from storefront.logging import get_logger
from .models import CartLine

logger = get_logger(__name__)

STORAGE_KEY = "flint_flours_cart"


class LocalCartStorage:
    """
    Persists the cart between client restarts.

    Reads never raise: anything unreadable is treated as an empty cart.
    """

    def __init__(self, path: str | os.PathLike):
        self.path = Path(path)

    def load(self) -> List[CartLine]:
        """Load persisted lines, or [] if missing or malformed."""
        if not self.path.exists():
            return []

        try:
            document = json.loads(self.path.read_text(encoding="utf-8"))
            raw_lines = document[STORAGE_KEY]
            if not isinstance(raw_lines, list):
                raise TypeError(f"{STORAGE_KEY} must be a list")
            lines = [CartLine.from_dict(raw) for raw in raw_lines]
        except (OSError, json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
            logger.error(f"Error parsing cart from local storage {self.path}: {e}")
            return []

        # Later duplicates win; zero quantities are never stored
        by_key = {}
        for line in lines:
            if line.quantity > 0:
                by_key[line.key] = line
        return list(by_key.values())

    def save(self, lines: List[CartLine]) -> None:
        """Persist lines atomically (write temp file, then replace)."""
        document = {STORAGE_KEY: [line.to_dict() for line in lines]}
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(dir=self.path.parent, prefix=".cart-", suffix=".json")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(document, f)
                os.replace(tmp_path, self.path)
            except BaseException:
                Path(tmp_path).unlink(missing_ok=True)
                raise
        except OSError as e:
            logger.error(f"Failed to save cart to local storage {self.path}: {e}")

    def clear(self) -> None:
        self.save([])
