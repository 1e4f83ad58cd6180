from __future__ import annotations

import os
import time
from typing import Any, Dict

from fastapi import APIRouter

from config.settings import settings
from models.schema import COL_SYSTEM, DOC_HEALTHZ
from storage.firestore_client import get_firestore_client

router = APIRouter()


def _firestore_probe(timeout_s: float = 0.20) -> Dict[str, Any]:
    """Single read of a fixed document with a short timeout. Never writes."""
    t0 = time.time()
    try:
        get_firestore_client().collection(COL_SYSTEM).document(DOC_HEALTHZ).get(timeout=timeout_s)
    except Exception as e:
        return {"ok": False, "error_type": type(e).__name__, "message": str(e)}
    return {"ok": True, "latency_ms": int((time.time() - t0) * 1000)}


@router.get("/health")
def health():
    fs = _firestore_probe()
    return {
        "ok": bool(fs["ok"]),
        "service": "marketplace-admin-api",
        "cloudrun_service": os.getenv("K_SERVICE") or "",
        "revision": os.getenv("K_REVISION") or "",
        "environment": settings.ENVIRONMENT,
        "firestore": fs,
        "firestore_ok": bool(fs["ok"]),
        "listener_mode": "native" if settings.LISTENER_NATIVE_QUERY else "scan",
        "callables_configured": bool(settings.FUNCTIONS_BASE_URL or settings.FIRESTORE_PROJECT_ID),
        "search_configured": bool(settings.SEARCH_HOST),
        "time_unix": time.time(),
    }
