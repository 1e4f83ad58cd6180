from __future__ import annotations

from typing import Callable, TypeVar

from google.cloud import firestore
from config.settings import settings

T = TypeVar("T")


def get_firestore_client() -> firestore.Client:
    # If FIRESTORE_PROJECT_ID is empty, the library will use ADC default project.
    if settings.FIRESTORE_PROJECT_ID:
        return firestore.Client(project=settings.FIRESTORE_PROJECT_ID)
    return firestore.Client()


def run_transaction(db: firestore.Client, fn: Callable[[firestore.Transaction], T]) -> T:
    """Run fn(tx) inside a Firestore transaction; retried by the client on contention."""
    txn = db.transaction()
    return firestore.transactional(fn)(txn)
