from __future__ import annotations

import logging
from typing import Optional, Set

from fastapi import Depends, HTTPException, Request
from fastapi.concurrency import run_in_threadpool
from google.oauth2 import id_token
from google.auth.transport import requests as google_requests

from config.settings import settings
from repos.user_repo import UserRepository
from utils.request_context import set_operator

log = logging.getLogger("console.operator_auth")


def _split_csv(v: str) -> Set[str]:
    return {x.strip().lower() for x in (v or "").split(",") if x.strip()}


def bearer_token(request: Request) -> str:
    auth = request.headers.get("authorization", "")
    if not auth.lower().startswith("bearer "):
        raise HTTPException(status_code=401, detail="missing_bearer_token")
    return auth.split(" ", 1)[1].strip()


def verify_operator_request(request: Request, users: Optional[UserRepository] = None) -> dict:
    token = bearer_token(request)
    audience = settings.OPERATOR_AUTH_AUDIENCE
    if not audience:
        # Fail closed: the Firebase project id must be configured
        raise HTTPException(status_code=500, detail="operator_auth_audience_not_configured")

    try:
        claims = id_token.verify_firebase_token(token, google_requests.Request(), audience=audience)
    except Exception as e:
        log.warning("operator_auth verify failed", extra={"extra": {"error": str(e)}})
        raise HTTPException(status_code=401, detail="invalid_operator_token")
    if not claims:
        raise HTTPException(status_code=401, detail="invalid_operator_token")

    allowed_emails = _split_csv(settings.OPERATOR_ALLOWED_EMAILS)
    email = str(claims.get("email") or "").lower()
    if allowed_emails and email not in allowed_emails:
        raise HTTPException(status_code=403, detail="operator_email_not_allowed")

    claims["role"] = _operator_role(claims, users)
    claims["id_token"] = token
    return claims


def _operator_role(claims: dict, users: Optional[UserRepository]) -> str:
    # A valid token is not enough: the user profile must carry an admin flag.
    uid = str(claims.get("user_id") or claims.get("sub") or claims.get("uid") or "")
    if not uid:
        raise HTTPException(status_code=403, detail="operator_profile_not_found")
    try:
        user = (users or UserRepository()).get(uid)
    except Exception as e:
        log.error("operator_auth profile lookup failed", extra={"extra": {"uid": uid, "error_type": type(e).__name__, "error": str(e)}})
        raise HTTPException(status_code=503, detail="operator_profile_unavailable")
    if not user:
        log.warning("operator_auth profile missing", extra={"extra": {"uid": uid}})
        raise HTTPException(status_code=403, detail="operator_profile_not_found")
    if user.get("isAdmin") is True:
        role = "admin"
    elif user.get("isSemiAdmin") is True:
        role = "semi_admin"
    else:
        log.warning("operator_auth not an admin", extra={"extra": {"uid": uid}})
        raise HTTPException(status_code=403, detail="admin_privileges_required")
    if not claims.get("name") and user.get("displayName"):
        claims["name"] = user["displayName"]
    return role


async def require_operator_auth(request: Request) -> dict:
    # Verified off the event loop; the operator is bound here so sync handlers inherit it.
    claims = await run_in_threadpool(verify_operator_request, request)
    set_operator(str(claims.get("email") or ""))
    return claims


OperatorClaims = Depends(require_operator_auth)
