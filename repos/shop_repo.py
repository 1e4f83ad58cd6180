from __future__ import annotations

from typing import Any, Dict, Optional
from google.cloud.firestore import Client
from storage.firestore_client import get_firestore_client
from models.schema import COL_SHOPS


class ShopRepository:
    def __init__(self, db: Optional[Client] = None):
        self.db = db or get_firestore_client()

    def get(self, shop_id: str) -> Optional[Dict[str, Any]]:
        shop_id = (shop_id or "").strip()
        if not shop_id:
            return None
        snap = self.db.collection(COL_SHOPS).document(shop_id).get()
        if not snap.exists:
            return None
        d = snap.to_dict() or {}
        d["shop_id"] = shop_id
        return d
