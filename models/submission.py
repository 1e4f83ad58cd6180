from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field


class _Unset:
    """Marks a field as not applicable; dropped from write payloads (unlike None)."""

    _instance: Optional["_Unset"] = None

    def __new__(cls) -> "_Unset":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNSET"

    def __bool__(self) -> bool:
        return False


UNSET: Any = _Unset()


class SubmissionStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    DUPLICATE = "duplicate"


TERMINAL_STATUSES = frozenset({SubmissionStatus.APPROVED, SubmissionStatus.REJECTED, SubmissionStatus.DUPLICATE})

# Legacy document shapes. First non-empty value wins.
REFERENCE_ALIASES: Tuple[str, ...] = ("referenceNo", "referenceNumber", "ilan_no", "ilanNo")
CREATED_AT_ALIASES: Tuple[str, ...] = ("createdAt", "submittedAt", "timestamp")
DISPLAY_NAME_ALIASES: Tuple[str, ...] = ("name", "productName", "title")
_LEGACY_STATUS = {"disapproved": SubmissionStatus.REJECTED.value}


# -------- Coercion helpers (loosely typed document fields) --------

def safe_str(value: Any, default: str = "") -> str:
    return value if isinstance(value, str) else default


def safe_float(value: Any, default: float = 0.0) -> float:
    if isinstance(value, bool):
        return default
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError:
            return default
    return default


def safe_int(value: Any, default: int = 0) -> int:
    f = safe_float(value, float("nan"))
    if f != f:  # NaN
        return default
    return int(f)


def safe_str_list(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    return [v for v in value if isinstance(v, str)]


def optional_float(value: Any) -> Any:
    return UNSET if value is None else safe_float(value)


def optional_int(value: Any) -> Any:
    return UNSET if value is None else safe_int(value)


def optional_str(value: Any) -> Any:
    return value if isinstance(value, str) else UNSET


def strip_unset(data: Mapping[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in data.items() if v is not UNSET}


# -------- Schema adapter --------

def first_present(raw: Mapping[str, Any], keys: Iterable[str], default: Any = None) -> Any:
    for k in keys:
        v = raw.get(k)
        if v is None:
            continue
        if isinstance(v, str) and not v.strip():
            continue
        return v
    return default


def resolve_reference_no(raw: Mapping[str, Any], aliases: Iterable[str] = REFERENCE_ALIASES) -> str:
    v = first_present(raw, aliases, "")
    return str(v).strip() if isinstance(v, (str, int)) and not isinstance(v, bool) else ""


def resolve_status(raw: Mapping[str, Any]) -> str:
    v = raw.get("status")
    if v is None or (isinstance(v, str) and not v.strip()):
        return SubmissionStatus.PENDING.value
    s = str(v).strip().lower()
    return _LEGACY_STATUS.get(s, s)


def resolve_created_at(raw: Mapping[str, Any]) -> Optional[datetime]:
    v = first_present(raw, CREATED_AT_ALIASES)
    return v if isinstance(v, datetime) else None


Coercions = Mapping[str, Callable[[Any], Any]]


def apply_coercions(raw: Mapping[str, Any], coercions: Coercions) -> Dict[str, Any]:
    out = dict(raw)
    for key, fn in coercions.items():
        out[key] = fn(raw.get(key))
    return out


class SubmissionRecord(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)

    id: str
    status: str = SubmissionStatus.PENDING.value
    reference_no: str = ""
    created_at: Optional[datetime] = None
    display_name: str = ""
    data: Dict[str, Any] = Field(default_factory=dict)

    @property
    def is_pending(self) -> bool:
        return self.status == SubmissionStatus.PENDING.value

    @classmethod
    def from_document(
        cls,
        doc_id: str,
        raw: Optional[Mapping[str, Any]],
        coercions: Optional[Coercions] = None,
        reference_aliases: Iterable[str] = REFERENCE_ALIASES,
    ) -> "SubmissionRecord":
        raw = dict(raw or {})
        data = apply_coercions(raw, coercions or {})
        return cls(
            id=doc_id,
            status=resolve_status(raw),
            reference_no=resolve_reference_no(raw, reference_aliases),
            created_at=resolve_created_at(raw),
            display_name=safe_str(first_present(raw, DISPLAY_NAME_ALIASES, "")),
            data=data,
        )
