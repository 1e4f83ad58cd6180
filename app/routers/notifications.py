from __future__ import annotations

from fastapi import APIRouter

from notifications.broadcast import BroadcastRequest, BroadcastService
from security.operator_auth import OperatorClaims

router = APIRouter()


@router.post("/notifications/broadcast")
def broadcast(body: BroadcastRequest, claims: dict = OperatorClaims):
    return BroadcastService().send(body)


@router.get("/notifications/language-stats")
def language_stats(claims: dict = OperatorClaims):
    return {"ok": True, "stats": BroadcastService().language_stats()}
