from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field

from config.settings import settings
from ops.metrics import Timer
from repos.notification_repo import NotificationRepository
from repos.user_repo import SUPPORTED_LANGUAGES, UserRepository

log = logging.getLogger("console.notifications")

NOTIFICATION_TYPES = (
    "general",
    "company_update",
    "boosted",
    "boost_expired",
    "product_review",
    "shipment",
    "shop_approved",
    "shop_disapproved",
    "message",
    "product_sold",
    "product_out_of_stock",
    "seller_review",
)


class NotificationValidationError(ValueError):
    pass


class BroadcastRequest(BaseModel):
    language_code: str = Field(..., min_length=2, max_length=8)
    type: str = Field(default="general")
    message: str = Field(default="", max_length=2000)
    product_id: Optional[str] = None
    shop_id: Optional[str] = None


def build_notification(req: BroadcastRequest, now: Optional[datetime] = None) -> Dict[str, Any]:
    message = (req.message or "").strip()
    if not message:
        raise NotificationValidationError("message_required")
    if req.type not in NOTIFICATION_TYPES:
        raise NotificationValidationError(f"unknown_type:{req.type}")
    product_id = (req.product_id or "").strip()
    shop_id = (req.shop_id or "").strip()
    if product_id and shop_id:
        raise NotificationValidationError("product_id_and_shop_id_are_exclusive")

    data: Dict[str, Any] = {
        "type": req.type,
        "message": message,
        "timestamp": now or datetime.now(timezone.utc),
        "isRead": False,
    }
    if product_id:
        data["productId"] = product_id
    if shop_id:
        data["shopId"] = shop_id
    return data


class BroadcastService:
    def __init__(self, users: Optional[UserRepository] = None, notifications: Optional[NotificationRepository] = None):
        self.users = users or UserRepository()
        self.notifications = notifications or NotificationRepository(db=self.users.db)

    def send(self, req: BroadcastRequest) -> Dict[str, Any]:
        if req.language_code not in SUPPORTED_LANGUAGES:
            raise NotificationValidationError(f"unsupported_language:{req.language_code}")
        data = build_notification(req)
        timer = Timer()

        user_ids = list(self.users.iter_ids_by_language(req.language_code))
        if not user_ids:
            return {"ok": False, "error": "no_users_for_language", "language_code": req.language_code, "sent": 0}

        sent = self.notifications.fan_out(user_ids, data, batch_size=settings.NOTIFICATION_BATCH_SIZE)
        log.info(
            "broadcast_sent",
            extra={
                "extra": {
                    "event": "broadcast_sent",
                    "language_code": req.language_code,
                    "type": req.type,
                    "recipients": sent,
                    "latency_ms": timer.ms(),
                }
            },
        )
        return {"ok": True, "language_code": req.language_code, "sent": sent}

    def language_stats(self) -> Dict[str, int]:
        return self.users.language_stats()
