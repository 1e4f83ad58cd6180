from __future__ import annotations

import logging
import time
from typing import Any, Dict, Optional

import httpx

from config.settings import settings

log = logging.getLogger("console.callable")

FN_SHOP_WELCOME_EMAIL = "shopWelcomeEmail"
FN_DELETE_USER_ACCOUNT = "deleteUserAccount"


class FunctionCallFailed(Exception):
    def __init__(self, name: str, message: str, status_code: int = 0):
        super().__init__(f"{name}: {message}")
        self.name = name
        self.message = message
        self.status_code = status_code


def _base_url() -> str:
    if settings.FUNCTIONS_BASE_URL:
        return settings.FUNCTIONS_BASE_URL.rstrip("/")
    if not settings.FIRESTORE_PROJECT_ID:
        raise RuntimeError("FIRESTORE_PROJECT_ID or FUNCTIONS_BASE_URL must be configured")
    return f"https://{settings.FUNCTIONS_REGION}-{settings.FIRESTORE_PROJECT_ID}.cloudfunctions.net"


class CallableClient:
    """HTTPS callable protocol: POST {"data": ...} -> {"result": ...} | {"error": {...}}."""

    def __init__(self, id_token: str = "", http: Optional[httpx.Client] = None, base_url: Optional[str] = None):
        self.id_token = id_token
        self.http = http
        self.base_url = base_url

    def call(self, name: str, data: Dict[str, Any]) -> Any:
        url = f"{self.base_url or _base_url()}/{name}"
        headers = {"Content-Type": "application/json"}
        if self.id_token:
            headers["Authorization"] = f"Bearer {self.id_token}"

        t0 = time.time()
        log.info("callable_attempt", extra={"extra": {"event": "callable_attempt", "function": name}})
        try:
            if self.http is not None:
                r = self.http.post(url, json={"data": data}, headers=headers, timeout=settings.FUNCTIONS_TIMEOUT_SEC)
            else:
                r = httpx.post(url, json={"data": data}, headers=headers, timeout=settings.FUNCTIONS_TIMEOUT_SEC)
        except httpx.HTTPError as e:
            log.error(
                "callable_exception",
                extra={"extra": {"event": "callable_exception", "function": name, "error_type": type(e).__name__, "message": str(e)}},
                exc_info=True,
            )
            raise FunctionCallFailed(name, str(e)) from e

        try:
            body = r.json()
        except ValueError:
            body = {}
        dt_ms = int((time.time() - t0) * 1000)
        log.info(
            "callable_result",
            extra={"extra": {"event": "callable_result", "function": name, "status_code": r.status_code, "latency_ms": dt_ms}},
        )

        err = body.get("error") if isinstance(body, dict) else None
        if r.status_code >= 400 or err:
            if isinstance(err, dict):
                message = str(err.get("message") or "")
            else:
                message = str(err or "")
            message = message or (r.text or "")[:500] or f"http_{r.status_code}"
            raise FunctionCallFailed(name, message, status_code=r.status_code)
        return body.get("result") if isinstance(body, dict) else None

    def send_welcome_email(self, shop_id: str, email: str) -> bool:
        """Best-effort; failures are logged and reported as False."""
        try:
            self.call(FN_SHOP_WELCOME_EMAIL, {"shopId": shop_id, "email": email})
            return True
        except Exception as e:
            log.warning(
                "welcome_email_failed",
                extra={"extra": {"event": "welcome_email_failed", "shop_id": shop_id, "error_type": type(e).__name__, "message": str(e)}},
            )
            return False

    def delete_user_account(self, user_id: str) -> Any:
        return self.call(FN_DELETE_USER_ACCOUNT, {"userId": user_id})
