from __future__ import annotations

import re
from typing import Optional
from urllib.parse import unquote

from google.cloud import storage
from config.settings import settings

# https://firebasestorage.googleapis.com/v0/b/BUCKET/o/PATH?alt=media...
_FIREBASE_URL_RE = re.compile(r"^https://firebasestorage\.googleapis\.com/v0/b/([^/]+)/o/([^?]+)")


def get_gcs_client() -> storage.Client:
    return storage.Client()


def split_storage_ref(ref: str, default_bucket: str = "") -> Optional[tuple[str, str]]:
    """(bucket, object path) for gs:// refs, Firebase Storage URLs and bare paths."""
    ref = (ref or "").strip()
    if not ref:
        return None
    if ref.startswith("gs://"):
        bucket, _, path = ref[len("gs://"):].partition("/")
        return (bucket, path) if bucket and path else None
    m = _FIREBASE_URL_RE.match(ref)
    if m:
        return m.group(1), unquote(m.group(2))
    if ref.startswith(("http://", "https://", "data:", "blob:")):
        return None
    if not default_bucket:
        return None
    return default_bucket, ref.lstrip("/")


def public_download_url(ref: str, client: Optional[storage.Client] = None) -> str:
    """
    Resolve a stored image reference to a browser-loadable URL.

    Plain http(s) URLs that are not Firebase Storage URLs are returned unchanged;
    anything unresolvable comes back as "".
    """
    ref = (ref or "").strip()
    parts = split_storage_ref(ref, settings.STORAGE_BUCKET)
    if parts is None:
        return ref if ref.startswith(("http://", "https://")) else ""
    bucket_name, path = parts
    client = client or get_gcs_client()
    return client.bucket(bucket_name).blob(path).public_url
