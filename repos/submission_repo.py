from __future__ import annotations

from typing import List, Optional

from google.cloud import firestore
from google.cloud.firestore import Client

from models.submission import SubmissionRecord, SubmissionStatus
from review.profiles import PromotionProfile
from storage.firestore_client import get_firestore_client


class SubmissionRepository:
    def __init__(self, profile: PromotionProfile, db: Optional[Client] = None):
        self.profile = profile
        self.db = db or get_firestore_client()

    def collection(self):
        return self.db.collection(self.profile.source_collection)

    def ref(self, submission_id: str):
        return self.collection().document(submission_id)

    def to_record(self, snap) -> SubmissionRecord:
        return SubmissionRecord.from_document(
            snap.id,
            snap.to_dict(),
            coercions=self.profile.coercions,
            reference_aliases=self.profile.reference_aliases,
        )

    def get(self, submission_id: str) -> Optional[SubmissionRecord]:
        snap = self.ref(submission_id).get()
        if not snap.exists:
            return None
        return self.to_record(snap)

    def pending_query(self, native: bool = True):
        if not native:
            return self.collection()
        return (
            self.collection()
            .where(filter=firestore.FieldFilter("status", "==", SubmissionStatus.PENDING.value))
            .order_by("createdAt", direction=firestore.Query.DESCENDING)
        )

    def list_pending(self, native: bool = True, limit: int = 500) -> List[SubmissionRecord]:
        if native:
            return [self.to_record(snap) for snap in self.pending_query(native=True).limit(limit).stream()]
        # Decided documents outnumber pending ones; filter before any cap.
        records = (self.to_record(snap) for snap in self.collection().stream())
        return [r for r in records if r.is_pending]
