from __future__ import annotations

import asyncio
import json
import logging

from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import StreamingResponse
from pydantic import BaseModel, Field

from cloudfunctions.callable_client import CallableClient
from repos.submission_repo import SubmissionRepository
from review.errors import SubmissionNotFound
from review.executor import DecisionExecutor, Outcome
from review.listener import PendingListener
from review.presenter import present_detail, present_list
from review.profiles import PromotionProfile, get_profile
from security.operator_auth import OperatorClaims

router = APIRouter()
log = logging.getLogger("console.routers.applications")

STREAM_KEEPALIVE_SEC = 15.0

OUTCOME_MESSAGES = {
    Outcome.APPROVED: "Application approved.",
    Outcome.REJECTED: "Application rejected.",
    Outcome.DUPLICATE: "A live record with this reference already exists. The application was marked as duplicate.",
}


class RejectRequest(BaseModel):
    reason: str | None = Field(default=None, max_length=1000)


def _profile(name: str) -> PromotionProfile:
    try:
        return get_profile(name)
    except ValueError:
        raise HTTPException(status_code=404, detail="unknown_profile")


@router.get("/applications/{profile}")
def list_pending(profile: str, claims: dict = OperatorClaims):
    p = _profile(profile)
    records = PendingListener(p).fetch_once()
    return {"ok": True, "profile": p.name, "count": len(records), "items": present_list(records)}


@router.get("/applications/{profile}/stream")
async def stream_pending(profile: str, request: Request, claims: dict = OperatorClaims):
    """Server-Sent Events: the full pending list is pushed on every collection change."""
    p = _profile(profile)
    loop = asyncio.get_running_loop()
    queue: asyncio.Queue = asyncio.Queue()

    def on_change(records):
        loop.call_soon_threadsafe(queue.put_nowait, present_list(records))

    listener = PendingListener(p, on_change=on_change).start()

    async def events():
        try:
            while not await request.is_disconnected():
                try:
                    items = await asyncio.wait_for(queue.get(), timeout=STREAM_KEEPALIVE_SEC)
                except asyncio.TimeoutError:
                    yield ": keepalive\n\n"
                    continue
                yield f"data: {json.dumps({'profile': p.name, 'items': items}, ensure_ascii=False)}\n\n"
        finally:
            listener.stop()

    return StreamingResponse(events(), media_type="text/event-stream")


@router.get("/applications/{profile}/{submission_id}")
def get_application(profile: str, submission_id: str, claims: dict = OperatorClaims):
    p = _profile(profile)
    record = SubmissionRepository(p).get(submission_id)
    if record is None:
        raise SubmissionNotFound(submission_id)
    return {"ok": True, "profile": p.name, "application": present_detail(record)}


@router.post("/applications/{profile}/{submission_id}/approve")
def approve_application(profile: str, submission_id: str, claims: dict = OperatorClaims):
    p = _profile(profile)
    executor = DecisionExecutor(p, callables=CallableClient(id_token=claims.get("id_token") or ""))
    result = executor.approve(submission_id, operator=claims)
    return {"ok": True, "message": OUTCOME_MESSAGES[result.outcome], **result.to_dict()}


@router.post("/applications/{profile}/{submission_id}/reject")
def reject_application(profile: str, submission_id: str, body: RejectRequest | None = None, claims: dict = OperatorClaims):
    p = _profile(profile)
    result = DecisionExecutor(p).reject(submission_id, reason=(body.reason if body else None), operator=claims)
    return {"ok": True, "message": OUTCOME_MESSAGES[result.outcome], **result.to_dict()}
