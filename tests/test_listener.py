from datetime import datetime, timedelta, timezone

from models.submission import SubmissionRecord
from review.listener import PendingListener, filter_pending, sort_newest_first
from review.profiles import PRODUCTS
from tests.fakes import FakeFirestore

T0 = datetime(2024, 6, 1, tzinfo=timezone.utc)


def _rec(doc_id, minutes=None, status=None):
    raw = {}
    if minutes is not None:
        raw["createdAt"] = T0 + timedelta(minutes=minutes)
    if status is not None:
        raw["status"] = status
    return SubmissionRecord.from_document(doc_id, raw)


def test_filter_and_sort():
    records = [_rec("a", 1), _rec("b", 5, "approved"), _rec("c"), _rec("d", 3, "pending"), _rec("e", 2)]
    ordered = sort_newest_first(filter_pending(records))
    assert [r.id for r in ordered] == ["d", "e", "a", "c"]


def test_native_query_only_sees_explicit_pending():
    db = FakeFirestore()
    db.put("product_applications/old", {"createdAt": T0})
    db.put("product_applications/new", {"createdAt": T0 + timedelta(hours=1), "status": "pending"})
    db.put("product_applications/done", {"createdAt": T0 + timedelta(hours=2), "status": "approved"})

    assert [r.id for r in PendingListener(PRODUCTS, db=db, native=True).fetch_once()] == ["new"]
    assert [r.id for r in PendingListener(PRODUCTS, db=db, native=False).fetch_once()] == ["new", "old"]


def test_subscription_follows_collection_changes():
    db = FakeFirestore()
    db.put("product_applications/a", {"createdAt": T0, "status": "pending"})
    seen = []
    listener = PendingListener(PRODUCTS, db=db, native=True, on_change=lambda recs: seen.append([r.id for r in recs]))

    listener.start()
    assert not listener.loading
    assert [r.id for r in listener.records] == ["a"]

    db.collection("product_applications").document("b").set({"createdAt": T0 + timedelta(minutes=1), "status": "pending"})
    db.collection("product_applications").document("a").set({"status": "approved"}, merge=True)

    assert seen == [["a"], ["b", "a"], ["b"]]

    listener.stop()
    db.collection("product_applications").document("c").set({"createdAt": T0, "status": "pending"})
    assert seen[-1] == ["b"]
    assert db.watchers == []


def test_subscribe_error_publishes_empty_result():
    db = FakeFirestore()
    db.fail_subscribe_with = RuntimeError("permission denied")
    seen = []

    listener = PendingListener(PRODUCTS, db=db, on_change=seen.append).start()

    assert listener.records == []
    assert listener.loading is False
    assert seen == [[]]


def test_bad_snapshot_publishes_empty_result(monkeypatch):
    db = FakeFirestore()
    db.put("product_applications/a", {"createdAt": T0, "status": "pending"})
    listener = PendingListener(PRODUCTS, db=db)

    def boom(snap):
        raise ValueError("malformed document")

    monkeypatch.setattr(listener.repo, "to_record", boom)
    listener.start()

    assert listener.records == []
    assert listener.loading is False


def test_scan_mode_finds_pending_among_many_decided():
    db = FakeFirestore()
    for i in range(600):
        db.put(f"product_applications/done{i:03d}", {"createdAt": T0, "status": "approved"})
    db.put("product_applications/zzz", {"productName": "Legacy"})
    db.put("product_applications/yyy", {"createdAt": T0, "status": "pending"})

    listener = PendingListener(PRODUCTS, db=db, native=False)

    assert [r.id for r in listener.fetch_once()] == ["yyy", "zzz"]
    assert [r.id for r in listener.fetch_once(limit=1)] == ["yyy"]
