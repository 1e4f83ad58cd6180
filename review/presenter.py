from __future__ import annotations

from typing import Any, Callable, Dict, List, Optional

from config.settings import settings
from models.submission import SubmissionRecord, UNSET
from storage.gcs_client import get_gcs_client, public_download_url, split_storage_ref

# Fields holding stored media references (single value or list).
IMAGE_FIELDS = ("imageUrls", "imageUrl", "coverImageUrl", "coverImageUrls", "profileImageUrl", "taxPlateCertificateUrl", "videoUrl")


def _resolve_images(value: Any, resolve: Callable[[str], str]) -> Any:
    if isinstance(value, list):
        return [resolve(v) for v in value if isinstance(v, str)]
    if isinstance(value, str):
        if "," in value and not value.startswith(("http://", "https://", "gs://")):
            return [resolve(v.strip()) for v in value.split(",") if v.strip()]
        return resolve(value)
    return value


def _jsonable(value: Any) -> Any:
    if hasattr(value, "isoformat"):
        return value.isoformat()
    if isinstance(value, dict):
        return {k: _jsonable(v) for k, v in value.items() if v is not UNSET}
    if isinstance(value, list):
        return [_jsonable(v) for v in value]
    return value


def present_summary(record: SubmissionRecord) -> Dict[str, Any]:
    return {
        "id": record.id,
        "status": record.status,
        "reference_no": record.reference_no,
        "display_name": record.display_name,
        "created_at": record.created_at.isoformat() if record.created_at else None,
    }


def lazy_url_resolver() -> Callable[[str], str]:
    """One storage client per resolver, created on first stored reference."""
    client: Dict[str, Any] = {}

    def resolve(ref: str) -> str:
        if "gcs" not in client and split_storage_ref(ref, settings.STORAGE_BUCKET) is not None:
            client["gcs"] = get_gcs_client()
        return public_download_url(ref, client=client.get("gcs"))

    return resolve


def present_detail(record: SubmissionRecord, resolve: Optional[Callable[[str], str]] = None) -> Dict[str, Any]:
    """Read-only view of every field; image references resolved to loadable URLs."""
    resolve = resolve or lazy_url_resolver()
    fields = {k: v for k, v in record.data.items() if v is not UNSET}
    for name in IMAGE_FIELDS:
        if name in fields:
            fields[name] = _resolve_images(fields[name], resolve)
    out = present_summary(record)
    out["fields"] = _jsonable(fields)
    return out


def present_list(records: List[SubmissionRecord]) -> List[Dict[str, Any]]:
    return [present_summary(r) for r in records]
