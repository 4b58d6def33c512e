# catalog.py
"""Catalog items and the CSV they are loaded from."""
from dataclasses import dataclass, field
from pathlib import Path
import csv
import logging
import os
from typing import Iterable, Mapping

from app_search.config import TEXT_SEPARATOR

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Item:
    id: str
    name: str = ""
    description: str = ""
    category: str = ""
    tags: tuple[str, ...] = field(default_factory=tuple)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "category": self.category,
            "tags": list(self.tags),
        }


def item_text(item: Item) -> str:
    """
    The text embedded for an item: name, description, category and every
    tag, joined by TEXT_SEPARATOR. Empty fields are left out.
    """
    parts = [item.name, item.description, item.category, *item.tags]
    return TEXT_SEPARATOR.join(p.strip() for p in parts if p and p.strip())


def _split_tags(raw) -> tuple[str, ...]:
    if raw is None:
        return ()
    if isinstance(raw, str):
        raw = raw.split(",")
    return tuple(t.strip() for t in raw if t and t.strip())


def items_from_records(records: Iterable[Mapping]) -> list[Item]:
    """Convert raw records to Items, dropping any without a non-empty id."""
    items: list[Item] = []
    dropped = 0
    for rec in records:
        item_id = (rec.get("id") or "").strip()
        if not item_id:
            dropped += 1
            continue
        items.append(Item(
            id=item_id,
            name=(rec.get("name") or "").strip(),
            description=(rec.get("description") or "").strip(),
            category=(rec.get("category") or "").strip(),
            tags=_split_tags(rec.get("tags")),
        ))
    if dropped:
        logger.warning("dropped %d catalog records without an id", dropped)
    return items


def load_csv(path: str | os.PathLike) -> list[Item]:
    """Read a headered CSV (id,name,description,category,tags)."""
    path = Path(path)
    with path.open(newline="", encoding="utf-8") as f:
        items = items_from_records(csv.DictReader(f))
    logger.info("loaded %d items from %s", len(items), path)
    return items
