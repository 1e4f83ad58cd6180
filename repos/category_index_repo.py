from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from google.cloud import firestore
from google.cloud.firestore import Client

from models.schema import COL_CATEGORY_SHOPS
from storage.firestore_client import get_firestore_client


class CategoryIndexRepository:
    """
    Denormalized "which shops sell in this category" lookup.

    category_shops/{segment}:
      - shops: list of {shopId, shopName} (set semantics via ArrayUnion/ArrayRemove)
      - level: category | subcategory | subsubcategory
      - categoryPath: the normalized segment
      - lastUpdated
    """

    def __init__(self, db: Optional[Client] = None):
        self.db = db or get_firestore_client()

    def _ref(self, key: str):
        return self.db.collection(COL_CATEGORY_SHOPS).document(key)

    def get(self, key: str) -> Optional[Dict[str, Any]]:
        snap = self._ref(key).get()
        if not snap.exists:
            return None
        return snap.to_dict() or {}

    def add_owner(self, entries: List[Tuple[str, str]], owner: Dict[str, str]) -> None:
        now = datetime.now(timezone.utc)
        batch = self.db.batch()
        for key, level in entries:
            batch.set(
                self._ref(key),
                {
                    "shops": firestore.ArrayUnion([owner]),
                    "level": level,
                    "categoryPath": key,
                    "lastUpdated": now,
                },
                merge=True,
            )
        batch.commit()

    def remove_owner(self, entries: List[Tuple[str, str]], owner: Dict[str, str]) -> None:
        now = datetime.now(timezone.utc)
        batch = self.db.batch()
        for key, _level in entries:
            batch.set(
                self._ref(key),
                {"shops": firestore.ArrayRemove([owner]), "lastUpdated": now},
                merge=True,
            )
        batch.commit()
