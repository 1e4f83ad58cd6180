from __future__ import annotations

from contextvars import ContextVar
from typing import Dict

# Per-request values stamped onto every log line.
_request_id_var: ContextVar[str] = ContextVar("request_id", default="")
_operator_var: ContextVar[str] = ContextVar("operator_email", default="")


def set_request_id(rid: str) -> None:
    _request_id_var.set(rid or "")


def get_request_id() -> str:
    return _request_id_var.get() or ""


def set_operator(email: str) -> None:
    _operator_var.set((email or "").lower())


def log_context() -> Dict[str, str]:
    out = {}
    rid = _request_id_var.get()
    if rid:
        out["request_id"] = rid
    operator = _operator_var.get()
    if operator:
        out["operator"] = operator
    return out


def clear_request_context() -> None:
    _request_id_var.set("")
    _operator_var.set("")
