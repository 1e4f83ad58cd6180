from __future__ import annotations

import logging
import math
import time
from typing import Any, Dict, List, Optional, Union

import httpx

from config.settings import settings

log = logging.getLogger("console.search")

FilterValue = Union[str, bool, List[str], None]


def build_filter_by(filters: Optional[Dict[str, FilterValue]]) -> str:
    """Exact-match filter_by clause: lists -> :=[`a`,`b`], bools -> :=true, strings -> :=`x`."""
    if not filters:
        return ""
    parts: List[str] = []
    for key, value in filters.items():
        if value is None:
            continue
        if isinstance(value, list):
            if value:
                parts.append(f"{key}:=[{','.join(f'`{v}`' for v in value)}]")
        elif isinstance(value, bool):
            parts.append(f"{key}:={'true' if value else 'false'}")
        else:
            parts.append(f"{key}:=`{value}`")
    return " && ".join(parts)


class SearchClient:
    def __init__(self, host: Optional[str] = None, api_key: Optional[str] = None, http: Optional[httpx.Client] = None):
        self.host = (host or settings.SEARCH_HOST).rstrip("/")
        self.api_key = api_key or settings.SEARCH_API_KEY
        if not self.host:
            raise RuntimeError("SEARCH_HOST not configured")
        self.http = http or httpx.Client(timeout=settings.SEARCH_TIMEOUT_SEC)

    def search(
        self,
        collection: str,
        query: str,
        query_by: str,
        filters: Optional[Dict[str, FilterValue]] = None,
        page: int = 0,
        hits_per_page: int = 50,
    ) -> Dict[str, Any]:
        params: Dict[str, Any] = {
            "q": (query or "").strip() or "*",
            "query_by": query_by,
            "page": page + 1,  # typesense pages are 1-based
            "per_page": hits_per_page,
        }
        filter_by = build_filter_by(filters)
        if filter_by:
            params["filter_by"] = filter_by

        t0 = time.time()
        r = self.http.get(
            f"{self.host}/collections/{collection}/documents/search",
            params=params,
            headers={"X-TYPESENSE-API-KEY": self.api_key},
        )
        r.raise_for_status()
        data = r.json()

        found = int(data.get("found") or 0)
        hits = [h.get("document") or {} for h in data.get("hits") or []]
        log.info(
            "search_result",
            extra={"extra": {"event": "search_result", "collection": collection, "found": found, "latency_ms": int((time.time() - t0) * 1000)}},
        )
        return {
            "hits": hits,
            "nbHits": found,
            "page": page,
            "nbPages": math.ceil(found / hits_per_page) if hits_per_page else 0,
            "hitsPerPage": hits_per_page,
        }

    def search_orders(self, query: str, filters: Optional[Dict[str, FilterValue]] = None, page: int = 0, hits_per_page: int = 50) -> Dict[str, Any]:
        return self.search(settings.SEARCH_ORDERS_COLLECTION, query, settings.SEARCH_QUERY_BY, filters, page, hits_per_page)
