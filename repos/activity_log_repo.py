from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, Optional
from google.cloud.firestore import Client
from storage.firestore_client import get_firestore_client
from models.schema import COL_ADMIN_ACTIVITY_LOGS


class ActivityLogRepository:
    def __init__(self, db: Optional[Client] = None):
        self.db = db or get_firestore_client()

    def write(self, operator: Dict[str, Any], activity: str, metadata: Optional[Dict[str, Any]] = None) -> None:
        entry: Dict[str, Any] = {
            "time": datetime.now(timezone.utc),
            "displayName": operator.get("name") or "",
            "email": operator.get("email") or "",
            "activity": activity,
        }
        if metadata:
            entry["metadata"] = metadata
        self.db.collection(COL_ADMIN_ACTIVITY_LOGS).document().set(entry, merge=False)
