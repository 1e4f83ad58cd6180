from __future__ import annotations

import copy
import uuid
from typing import Any, Callable, Dict, List, Optional, Tuple

from google.api_core import exceptions as gexc
from google.cloud import firestore


def _apply_transforms(current: Any, value: Any) -> Any:
    if isinstance(value, firestore.ArrayUnion):
        out = list(current) if isinstance(current, list) else []
        for v in value.values:
            if v not in out:
                out.append(copy.deepcopy(v))
        return out
    if isinstance(value, firestore.ArrayRemove):
        out = list(current) if isinstance(current, list) else []
        return [v for v in out if v not in value.values]
    return copy.deepcopy(value)


def _merge(current: Dict[str, Any], data: Dict[str, Any]) -> Dict[str, Any]:
    out = dict(current)
    for k, v in data.items():
        if isinstance(v, dict) and isinstance(out.get(k), dict):
            out[k] = _merge(out[k], v)
        else:
            out[k] = _apply_transforms(out.get(k), v)
    return out


class FakeSnapshot:
    def __init__(self, doc_id: str, data: Optional[Dict[str, Any]]):
        self.id = doc_id
        self._data = copy.deepcopy(data) if data is not None else None

    @property
    def exists(self) -> bool:
        return self._data is not None

    def to_dict(self) -> Optional[Dict[str, Any]]:
        return copy.deepcopy(self._data) if self._data is not None else None


class FakeDocRef:
    def __init__(self, db: "FakeFirestore", path: str):
        self._db = db
        self.path = path
        self.id = path.rsplit("/", 1)[-1]

    def collection(self, name: str) -> "FakeCollection":
        return FakeCollection(self._db, f"{self.path}/{name}")

    def get(self, transaction=None, timeout=None) -> FakeSnapshot:
        self._db.reads.append(self.path)
        return FakeSnapshot(self.id, self._db.docs.get(self.path))

    def set(self, data: Dict[str, Any], merge: bool = False) -> None:
        self._db.apply([("set", self, data, merge)])

    def update(self, data: Dict[str, Any]) -> None:
        self._db.apply([("update", self, data, False)])

    def create(self, data: Dict[str, Any]) -> None:
        self._db.apply([("create", self, data, False)])

    def delete(self) -> None:
        self._db.apply([("delete", self, None, False)])


class FakeWatch:
    def __init__(self, db: "FakeFirestore", entry):
        self._db = db
        self._entry = entry

    def unsubscribe(self) -> None:
        if self._entry in self._db.watchers:
            self._db.watchers.remove(self._entry)


class FakeQuery:
    def __init__(self, db: "FakeFirestore", path: str, filters=None, order=None, limit_n=None):
        self._db = db
        self._path = path
        self._filters: List[Tuple[str, str, Any]] = list(filters or [])
        self._order: Optional[Tuple[str, str]] = order
        self._limit = limit_n

    def where(self, field_path=None, op_string=None, value=None, filter=None) -> "FakeQuery":
        if filter is not None:
            field_path, op_string, value = filter.field_path, filter.op_string, filter.value
        return FakeQuery(self._db, self._path, self._filters + [(field_path, op_string, value)], self._order, self._limit)

    def order_by(self, field_path: str, direction: str = "ASCENDING") -> "FakeQuery":
        return FakeQuery(self._db, self._path, self._filters, (field_path, direction), self._limit)

    def limit(self, n: int) -> "FakeQuery":
        return FakeQuery(self._db, self._path, self._filters, self._order, n)

    def _matches(self, data: Dict[str, Any]) -> bool:
        for field_path, op, value in self._filters:
            if op != "==":
                raise NotImplementedError(op)
            if field_path not in data or data[field_path] != value:
                return False
        return True

    def stream(self):
        prefix = self._path + "/"
        snaps = []
        for path, data in list(self._db.docs.items()):
            if not path.startswith(prefix) or "/" in path[len(prefix):]:
                continue
            if self._matches(data):
                snaps.append(FakeSnapshot(path[len(prefix):], data))
        if self._order:
            field_path, direction = self._order
            snaps = [s for s in snaps if field_path in (s.to_dict() or {})]
            snaps.sort(key=lambda s: s.to_dict()[field_path], reverse=(direction == firestore.Query.DESCENDING))
        if self._limit is not None:
            snaps = snaps[: self._limit]
        return iter(snaps)

    def on_snapshot(self, callback: Callable) -> FakeWatch:
        if self._db.fail_subscribe_with is not None:
            raise self._db.fail_subscribe_with
        entry = (self, callback)
        self._db.watchers.append(entry)
        callback(list(self.stream()), [], None)
        return FakeWatch(self._db, entry)


class FakeCollection(FakeQuery):
    def __init__(self, db: "FakeFirestore", path: str):
        super().__init__(db, path)

    def document(self, doc_id: Optional[str] = None) -> FakeDocRef:
        return FakeDocRef(self._db, f"{self._path}/{doc_id or uuid.uuid4().hex[:20]}")


class FakeBatch:
    def __init__(self, db: "FakeFirestore"):
        self._db = db
        self._ops: List[tuple] = []

    def set(self, ref: FakeDocRef, data: Dict[str, Any], merge: bool = False) -> None:
        self._ops.append(("set", ref, data, merge))

    def update(self, ref: FakeDocRef, data: Dict[str, Any]) -> None:
        self._ops.append(("update", ref, data, False))

    def create(self, ref: FakeDocRef, data: Dict[str, Any]) -> None:
        self._ops.append(("create", ref, data, False))

    def delete(self, ref: FakeDocRef) -> None:
        self._ops.append(("delete", ref, None, False))

    def commit(self) -> None:
        if self._db.fail_commits_with is not None:
            raise self._db.fail_commits_with
        self._db.apply(self._ops)
        self._db.commits += 1


class FakeFirestore:
    """In-memory stand-in for google.cloud.firestore.Client (the subset this codebase uses)."""

    def __init__(self):
        self.docs: Dict[str, Dict[str, Any]] = {}
        self.watchers: List[tuple] = []
        self.reads: List[str] = []
        self.writes: List[str] = []
        self.commits = 0
        self.fail_commits_with: Optional[BaseException] = None
        self.fail_subscribe_with: Optional[BaseException] = None

    def collection(self, name: str) -> FakeCollection:
        return FakeCollection(self, name)

    def batch(self) -> FakeBatch:
        return FakeBatch(self)

    def transaction(self) -> FakeBatch:
        return FakeBatch(self)

    # -------- test helpers --------
    def put(self, path: str, data: Dict[str, Any]) -> None:
        self.docs[path] = copy.deepcopy(data)

    def data(self, path: str) -> Optional[Dict[str, Any]]:
        d = self.docs.get(path)
        return copy.deepcopy(d) if d is not None else None

    def apply(self, ops: List[tuple]) -> None:
        staged = dict(self.docs)
        for op, ref, data, merge in ops:
            current = staged.get(ref.path)
            if op == "create":
                if current is not None:
                    raise gexc.AlreadyExists(f"{ref.path} already exists")
                staged[ref.path] = _merge({}, data)
            elif op == "update":
                if current is None:
                    raise gexc.NotFound(f"{ref.path} not found")
                staged[ref.path] = _merge(current, data)
            elif op == "set":
                staged[ref.path] = _merge(current or {}, data) if merge else _merge({}, data)
            elif op == "delete":
                staged.pop(ref.path, None)
            self.writes.append(ref.path)
        self.docs = staged
        for query, callback in list(self.watchers):
            callback(list(query.stream()), [], None)


def run_fake_transaction(db: FakeFirestore, fn):
    """Mirror of storage.firestore_client.run_transaction: writes land only if fn returns."""
    tx = db.transaction()
    result = fn(tx)
    tx.commit()
    return result
