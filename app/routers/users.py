from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field

from cloudfunctions.callable_client import CallableClient
from repos.activity_log_repo import ActivityLogRepository
from repos.user_repo import UserRepository
from security.operator_auth import OperatorClaims

router = APIRouter()
log = logging.getLogger("console.routers.users")


class DeleteAccountRequest(BaseModel):
    confirm_email: str = Field(..., min_length=3, max_length=320)


@router.delete("/users/{user_id}")
def delete_user_account(user_id: str, body: DeleteAccountRequest, claims: dict = OperatorClaims):
    repo = UserRepository()
    user = repo.get(user_id)
    if not user:
        raise HTTPException(status_code=404, detail="user_not_found")
    if body.confirm_email.strip().lower() != str(user.get("email") or "").strip().lower():
        raise HTTPException(status_code=400, detail="confirm_email_mismatch")

    # FunctionCallFailed propagates to the operator.
    CallableClient(id_token=claims.get("id_token") or "").delete_user_account(user_id)

    try:
        ActivityLogRepository(db=repo.db).write(claims, "user account deleted", {"userId": user_id})
    except Exception as e:
        log.error("activity_log_failed", extra={"extra": {"event": "activity_log_failed", "error_type": type(e).__name__, "message": str(e)}})
    return {"ok": True, "user_id": user_id, "deleted": True}
