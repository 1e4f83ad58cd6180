from __future__ import annotations

from typing import Any, Dict, Iterable, Optional

from google.cloud.firestore import Client
from storage.firestore_client import get_firestore_client
from models.schema import COL_USER_NOTIFICATIONS, COL_USERS

FIRESTORE_BATCH_LIMIT = 500


class NotificationRepository:
    def __init__(self, db: Optional[Client] = None):
        self.db = db or get_firestore_client()

    def _col(self, user_id: str):
        return self.db.collection(COL_USERS).document(user_id).collection(COL_USER_NOTIFICATIONS)

    def create(self, user_id: str, data: Dict[str, Any]) -> str:
        ref = self._col(user_id).document()
        ref.set(data, merge=False)
        return ref.id

    def fan_out(self, user_ids: Iterable[str], data: Dict[str, Any], batch_size: int = FIRESTORE_BATCH_LIMIT) -> int:
        """One document per user; each batch commits on its own, so a failure leaves earlier batches written."""
        batch_size = max(1, min(int(batch_size), FIRESTORE_BATCH_LIMIT))
        written = 0
        pending = 0
        batch = self.db.batch()
        for user_id in user_ids:
            batch.set(self._col(user_id).document(), dict(data))
            pending += 1
            if pending >= batch_size:
                batch.commit()
                written += pending
                pending = 0
                batch = self.db.batch()
        if pending:
            batch.commit()
            written += pending
        return written
