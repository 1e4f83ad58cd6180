from __future__ import annotations

from typing import Any, Dict, Iterable, Optional

from google.cloud import firestore
from google.cloud.firestore import Client
from storage.firestore_client import get_firestore_client
from models.schema import COL_USERS

SUPPORTED_LANGUAGES = ("tr", "en", "ru")


class UserRepository:
    def __init__(self, db: Optional[Client] = None):
        self.db = db or get_firestore_client()

    def get(self, user_id: str) -> Optional[Dict[str, Any]]:
        snap = self.db.collection(COL_USERS).document(user_id).get()
        if not snap.exists:
            return None
        d = snap.to_dict() or {}
        d["user_id"] = user_id
        return d

    def update(self, user_id: str, data: Dict[str, Any]) -> None:
        self.db.collection(COL_USERS).document(user_id).set(data, merge=True)

    def iter_ids_by_language(self, language_code: str) -> Iterable[str]:
        q = self.db.collection(COL_USERS).where(filter=firestore.FieldFilter("languageCode", "==", language_code))
        for snap in q.stream():
            yield snap.id

    def language_stats(self) -> Dict[str, int]:
        # Full scan; the user base is small enough for an admin-triggered count.
        stats = {lang: 0 for lang in SUPPORTED_LANGUAGES}
        stats["total"] = 0
        for snap in self.db.collection(COL_USERS).stream():
            lang = (snap.to_dict() or {}).get("languageCode")
            if lang in stats and lang != "total":
                stats[lang] += 1
            stats["total"] += 1
        return stats
