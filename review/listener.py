from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Iterable, List, Optional

from google.cloud.firestore import Client

from config.settings import settings
from models.submission import SubmissionRecord
from repos.submission_repo import SubmissionRepository
from review.profiles import PromotionProfile

log = logging.getLogger("console.listener")

OnChange = Callable[[List[SubmissionRecord]], None]


def filter_pending(records: Iterable[SubmissionRecord]) -> List[SubmissionRecord]:
    return [r for r in records if r.is_pending]


def sort_newest_first(records: Iterable[SubmissionRecord]) -> List[SubmissionRecord]:
    # Records without createdAt go last; ties keep arrival order.
    return sorted(records, key=lambda r: (r.created_at is None, -r.created_at.timestamp() if r.created_at else 0.0))


class PendingListener:
    """
    Live view of pending submissions for one profile.

    Native mode pushes `status == pending` and `createdAt DESC` into the query.
    Scan mode subscribes to the whole collection so legacy documents without a
    status field are still listed. Both apply the same client-side refinement.
    Snapshots arrive on the client's watch thread; state is guarded by a lock.
    """

    def __init__(
        self,
        profile: PromotionProfile,
        db: Optional[Client] = None,
        native: Optional[bool] = None,
        on_change: Optional[OnChange] = None,
    ):
        self.profile = profile
        self.repo = SubmissionRepository(profile, db=db)
        self.native = settings.LISTENER_NATIVE_QUERY if native is None else native
        self.on_change = on_change
        self._lock = threading.Lock()
        self._records: List[SubmissionRecord] = []
        self._loading = False
        self._watch: Any = None

    @property
    def records(self) -> List[SubmissionRecord]:
        with self._lock:
            return list(self._records)

    @property
    def loading(self) -> bool:
        with self._lock:
            return self._loading

    def refine(self, records: Iterable[SubmissionRecord]) -> List[SubmissionRecord]:
        return sort_newest_first(filter_pending(records))

    def fetch_once(self, limit: int = 500) -> List[SubmissionRecord]:
        return self.refine(self.repo.list_pending(native=self.native, limit=limit))[:limit]

    def start(self) -> "PendingListener":
        with self._lock:
            if self._watch is not None:
                return self
            self._loading = True
        try:
            watch = self.repo.pending_query(native=self.native).on_snapshot(self._on_snapshot)
        except Exception as e:
            self._fail("subscribe", e)
            return self
        with self._lock:
            self._watch = watch
        log.info(
            "listener_started",
            extra={"extra": {"event": "listener_started", "profile": self.profile.name, "native": self.native}},
        )
        return self

    def stop(self) -> None:
        with self._lock:
            watch, self._watch = self._watch, None
            self._loading = False
        if watch is not None:
            watch.unsubscribe()
            log.info("listener_stopped", extra={"extra": {"event": "listener_stopped", "profile": self.profile.name}})

    def _on_snapshot(self, docs, changes, read_time) -> None:
        try:
            records = self.refine(self.repo.to_record(snap) for snap in docs)
        except Exception as e:
            self._fail("snapshot", e)
            return
        self._publish(records)

    def _publish(self, records: List[SubmissionRecord]) -> None:
        with self._lock:
            self._records = records
            self._loading = False
        if self.on_change is not None:
            try:
                self.on_change(list(records))
            except Exception as e:
                log.error(
                    "listener_callback_failed",
                    extra={"extra": {"event": "listener_callback_failed", "profile": self.profile.name, "error_type": type(e).__name__, "message": str(e)}},
                    exc_info=True,
                )

    def _fail(self, stage: str, e: Exception) -> None:
        log.error(
            "listener_error",
            extra={"extra": {"event": "listener_error", "stage": stage, "profile": self.profile.name, "error_type": type(e).__name__, "message": str(e)}},
            exc_info=True,
        )
        self._publish([])
