"""Durable cart slot: the cart is kept as a JSON array in a single file."""

import json
import os
import tempfile
from pathlib import Path
from typing import Iterable, List, Optional, Union

import structlog

from cart import LineItem
from config import get_settings

logger = structlog.get_logger()

SLOT_NAME = "cart"


class CartStorage:
    def __init__(self, path: Optional[Union[str, Path]] = None):
        self.path = Path(path or get_settings().cart_path)

    def load(self) -> List[LineItem]:
        """Read the slot. A missing or unreadable cart is an empty cart."""
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            return []
        except (OSError, ValueError) as e:
            logger.warning("cart_storage_corrupt", slot=SLOT_NAME, path=str(self.path), error=str(e))
            return []

        if not isinstance(data, list):
            logger.warning("cart_storage_corrupt", slot=SLOT_NAME, path=str(self.path), error="not a list")
            return []

        items: List[LineItem] = []
        seen = set()
        try:
            for entry in data:
                item = LineItem.from_dict(entry)
                if item.name in seen:
                    raise ValueError(f"duplicate line item {item.name!r}")
                seen.add(item.name)
                items.append(item)
        except (KeyError, TypeError, ValueError) as e:
            logger.warning("cart_storage_corrupt", slot=SLOT_NAME, path=str(self.path), error=str(e))
            return []
        return items

    def save(self, items: Iterable[LineItem]) -> None:
        payload = [item.to_dict() for item in items]
        self.path.parent.mkdir(parents=True, exist_ok=True)

        # write-then-rename so readers never see a half written slot
        fd, tmp_path = tempfile.mkstemp(dir=self.path.parent, prefix=f".{SLOT_NAME}-", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(payload, f, indent=2)
            os.replace(tmp_path, self.path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise

    def clear(self) -> None:
        try:
            self.path.unlink()
        except FileNotFoundError:
            pass
