from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, Mapping, Optional

from google.api_core import exceptions as gexc
from google.cloud import firestore
from google.cloud.firestore import Client

from cloudfunctions.callable_client import CallableClient
from config.settings import settings
from models.submission import SubmissionStatus, strip_unset
from ops.metrics import Timer
from repos.activity_log_repo import ActivityLogRepository
from repos.category_index_repo import CategoryIndexRepository
from repos.notification_repo import NotificationRepository
from repos.shop_repo import ShopRepository
from repos.submission_repo import SubmissionRepository
from repos.user_repo import UserRepository
from review.category_index import CategoryIndexUpdater
from review.errors import AlreadyProcessed, RejectionReasonRequired, ReviewError, SubmissionNotFound, WriteFailed
from review.profiles import PromotionProfile, owner_messages
from storage.firestore_client import get_firestore_client, run_transaction

log = logging.getLogger("console.review")

_STORE_ERRORS = (gexc.GoogleAPICallError, gexc.RetryError, ConnectionError, TimeoutError)


class Outcome(str, Enum):
    APPROVED = "approved"
    REJECTED = "rejected"
    DUPLICATE = "duplicate"


@dataclass
class DecisionResult:
    outcome: Outcome
    submission_id: str
    target_collection: str = ""
    target_key: str = ""
    existing_record_id: str = ""
    index_updated: Optional[bool] = None
    live_record: Dict[str, Any] = field(default_factory=dict)
    review_fields: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "outcome": self.outcome.value,
            "submission_id": self.submission_id,
            "target_collection": self.target_collection,
            "target_key": self.target_key,
            "existing_record_id": self.existing_record_id,
            "index_updated": self.index_updated,
            **self.review_fields,
        }


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def build_live_payload(profile: PromotionProfile, data: Dict[str, Any], target_key: str, now: datetime) -> Dict[str, Any]:
    """Copy submission fields, drop submission-only ones, overlay promotion fields, strip UNSET (None is kept)."""
    payload = dict(data)
    if profile.prepare is not None:
        payload = profile.prepare(payload)
    for name in profile.all_dropped_fields():
        payload.pop(name, None)
    payload.update({"id": target_key, "createdAt": now, "updatedAt": now, "needsSync": True})
    if profile.id_mirror_field:
        payload[profile.id_mirror_field] = target_key
    if profile.related_field:
        payload[profile.related_field] = []
    return strip_unset(payload)


class DecisionExecutor:
    """
    Approve / reject one submission.

    The pending guard, duplicate-target check and both writes run in a single
    Firestore transaction, so at most one terminal transition lands per
    submission. Everything after commit (category index, owner notification,
    welcome email, activity log) is best-effort and never changes the outcome.
    """

    def __init__(
        self,
        profile: PromotionProfile,
        db: Optional[Client] = None,
        index_updater: Optional[CategoryIndexUpdater] = None,
        callables: Optional[CallableClient] = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.profile = profile
        self.db = db or get_firestore_client()
        self.submissions = SubmissionRepository(profile, db=self.db)
        self.index_updater = index_updater or CategoryIndexUpdater(CategoryIndexRepository(db=self.db))
        self.callables = callables
        self.clock = clock

    # -------- Decisions --------
    def approve(self, submission_id: str, operator: Optional[Dict[str, Any]] = None) -> DecisionResult:
        timer = Timer()
        self._log_attempt("approve", submission_id)
        now = self.clock()
        src_ref = self.submissions.ref(submission_id)
        profile = self.profile
        seen: Dict[str, Any] = {}

        def _run(tx: firestore.Transaction) -> DecisionResult:
            record = self._pending_record(tx, src_ref, submission_id)
            seen["data"] = record.data

            if not profile.creates_live_record:
                fields = profile.approval_fields(submission_id, now) if profile.approval_fields else {}
                tx.update(src_ref, {"status": SubmissionStatus.APPROVED.value, "reviewedAt": now, **fields})
                return DecisionResult(outcome=Outcome.APPROVED, submission_id=submission_id, review_fields=dict(fields))

            target_collection = profile.target_collection(record.data)
            target_key = record.reference_no or submission_id
            target_ref = self.db.collection(target_collection).document(target_key)

            if target_ref.get(transaction=tx).exists:
                tx.update(
                    src_ref,
                    {
                        "status": SubmissionStatus.DUPLICATE.value,
                        "reviewedAt": now,
                        "existingRecordId": target_key,
                    },
                )
                return DecisionResult(
                    outcome=Outcome.DUPLICATE,
                    submission_id=submission_id,
                    target_collection=target_collection,
                    target_key=target_key,
                    existing_record_id=target_key,
                )

            payload = build_live_payload(profile, record.data, target_key, now)
            tx.create(target_ref, payload)
            tx.update(
                src_ref,
                {
                    "status": SubmissionStatus.APPROVED.value,
                    "reviewedAt": now,
                    "approvedRecordId": target_key,
                    "approvedCollection": target_collection,
                },
            )
            return DecisionResult(
                outcome=Outcome.APPROVED,
                submission_id=submission_id,
                target_collection=target_collection,
                target_key=target_key,
                live_record=payload,
            )

        result = self._commit("approve", submission_id, _run)

        if result.outcome is Outcome.APPROVED:
            result.index_updated = self._update_index(result)
            self._after_approve(result, seen.get("data") or {})
        self._activity(operator, f"{profile.name} application {result.outcome.value}", {"submissionId": submission_id, "targetKey": result.target_key})
        self._log_result("approve", result, timer)
        return result

    def reject(self, submission_id: str, reason: Optional[str] = None, operator: Optional[Dict[str, Any]] = None) -> DecisionResult:
        timer = Timer()
        self._log_attempt("reject", submission_id)
        now = self.clock()
        src_ref = self.submissions.ref(submission_id)
        reason = (reason or "").strip()
        if not reason:
            if self.profile.requires_rejection_reason:
                err = RejectionReasonRequired(submission_id)
                log.warning(
                    "decision_rejected",
                    extra={"extra": {"event": "decision_rejected", "action": "reject", "profile": self.profile.name, "submission_id": submission_id, "code": err.code}},
                )
                raise err
            reason = settings.DEFAULT_REJECTION_REASON
        seen: Dict[str, Any] = {}

        def _run(tx: firestore.Transaction) -> DecisionResult:
            record = self._pending_record(tx, src_ref, submission_id)
            seen["data"] = record.data
            tx.update(
                src_ref,
                {
                    "status": SubmissionStatus.REJECTED.value,
                    "reviewedAt": now,
                    "rejectionReason": reason,
                },
            )
            return DecisionResult(outcome=Outcome.REJECTED, submission_id=submission_id)

        result = self._commit("reject", submission_id, _run)

        data = seen.get("data") or {}
        owner_id = str(data.get(self.profile.owner_user_field) or "").strip()
        if self.profile.rejected_notification_type and owner_id:
            self._notify_owner(
                owner_id,
                self.profile.rejected_notification_type,
                self.profile.rejected_messages,
                data,
                submission_id,
                {"rejectionReason": reason},
            )
        self._activity(operator, f"{self.profile.name} application rejected", {"submissionId": submission_id, "reason": reason})
        self._log_result("reject", result, timer)
        return result

    # -------- Internals --------
    def _commit(self, action: str, submission_id: str, fn: Callable[[firestore.Transaction], DecisionResult]) -> DecisionResult:
        try:
            return run_transaction(self.db, fn)
        except ReviewError as e:
            log.warning(
                "decision_rejected",
                extra={"extra": {"event": "decision_rejected", "action": action, "profile": self.profile.name, "submission_id": submission_id, "code": e.code}},
            )
            raise
        except _STORE_ERRORS as e:
            err = WriteFailed(submission_id, e)
            log.error(
                "decision_write_failed",
                extra={
                    "extra": {
                        "event": "decision_write_failed",
                        "action": action,
                        "profile": self.profile.name,
                        "submission_id": submission_id,
                        "kind": err.kind.value,
                        "error_type": type(e).__name__,
                        "message": str(e),
                    }
                },
                exc_info=True,
            )
            raise err from e

    def _update_index(self, result: DecisionResult) -> Optional[bool]:
        profile = self.profile
        live = result.live_record
        if not profile.maintains_category_index or result.target_collection != profile.organization_collection:
            return None
        shop_id = profile.linkage(live)
        try:
            shop = ShopRepository(db=self.db).get(shop_id)
        except Exception as e:
            log.error(
                "category_index_failed",
                extra={"extra": {"event": "category_index_failed", "stage": "shop_lookup", "shop_id": shop_id, "error_type": type(e).__name__, "message": str(e)}},
                exc_info=True,
            )
            return False
        if not shop:
            log.warning("category_index_skipped", extra={"extra": {"event": "category_index_skipped", "reason": "shop_not_found", "shop_id": shop_id}})
            return False
        try:
            return self.index_updater.update(
                shop_id,
                str(shop.get("name") or "Unknown Shop"),
                str(live.get("category") or ""),
                str(live.get("subcategory") or ""),
                str(live.get("subsubcategory") or ""),
                operation="add",
            )
        except Exception as e:
            log.error(
                "category_index_failed",
                extra={"extra": {"event": "category_index_failed", "stage": "update", "shop_id": shop_id, "error_type": type(e).__name__, "message": str(e)}},
                exc_info=True,
            )
            return False

    def _pending_record(self, tx: firestore.Transaction, src_ref, submission_id: str):
        snap = src_ref.get(transaction=tx)
        if not snap.exists:
            raise SubmissionNotFound(submission_id)
        record = self.submissions.to_record(snap)
        if not record.is_pending:
            raise AlreadyProcessed(submission_id, record.status)
        return record

    def _after_approve(self, result: DecisionResult, data: Dict[str, Any]) -> None:
        profile = self.profile
        owner_id = str(data.get(profile.owner_user_field) or "").strip()
        if not owner_id:
            return
        user_update: Dict[str, Any] = {}
        if profile.owner_membership_field and result.target_key:
            user_update[profile.owner_membership_field] = {result.target_key: "owner"}
        if profile.verifies_owner:
            user_update["verified"] = True
        if user_update:
            self._best_effort("owner_membership", lambda: UserRepository(db=self.db).update(owner_id, user_update))
        if profile.approved_notification_type:
            context: Dict[str, Any] = {"shopId": result.target_key} if profile.creates_live_record else {}
            context.update(result.review_fields)
            self._notify_owner(
                owner_id,
                profile.approved_notification_type,
                profile.approved_messages,
                data,
                result.submission_id,
                context,
            )
        if profile.send_welcome_email:
            # Contact fields never reach the live record; the submission still carries them.
            email = str(data.get("email") or "").strip()
            if email:
                callables = self.callables or CallableClient()
                callables.send_welcome_email(result.target_key, email)

    def _notify_owner(
        self,
        owner_id: str,
        notification_type: str,
        messages: Mapping[str, str],
        data: Dict[str, Any],
        submission_id: str,
        context: Dict[str, Any],
    ) -> None:
        profile = self.profile
        values = profile.notification_context(data, submission_id) if profile.notification_context else {}
        values.update(context)
        fields: Dict[str, Any] = {k: v for k, v in values.items() if v is not None}
        fields.update(owner_messages(messages, values))
        fields.update({"type": notification_type, "timestamp": self.clock(), "isRead": False})
        self._best_effort("owner_notification", lambda: NotificationRepository(db=self.db).create(owner_id, fields))

    def _activity(self, operator: Optional[Dict[str, Any]], activity: str, metadata: Dict[str, Any]) -> None:
        if operator is None:
            return
        self._best_effort("activity_log", lambda: ActivityLogRepository(db=self.db).write(operator, activity, metadata))

    def _best_effort(self, step: str, fn: Callable[[], Any]) -> None:
        try:
            fn()
        except Exception as e:
            log.error(
                "followup_failed",
                extra={"extra": {"event": "followup_failed", "step": step, "profile": self.profile.name, "error_type": type(e).__name__, "message": str(e)}},
                exc_info=True,
            )

    def _log_attempt(self, action: str, submission_id: str) -> None:
        log.info(
            "decision_attempt",
            extra={"extra": {"event": "decision_attempt", "action": action, "profile": self.profile.name, "submission_id": submission_id}},
        )

    def _log_result(self, action: str, result: DecisionResult, timer: Timer) -> None:
        log.info(
            "decision_result",
            extra={
                "extra": {
                    "event": "decision_result",
                    "action": action,
                    "profile": self.profile.name,
                    **result.to_dict(),
                    "latency_ms": timer.ms(),
                }
            },
        )
