from __future__ import annotations

import logging
from typing import List, Optional, Tuple

from repos.category_index_repo import CategoryIndexRepository

log = logging.getLogger("console.category_index")

LEVELS = ("category", "subcategory", "subsubcategory")


def normalize_segment(segment: Optional[str]) -> str:
    """First letter upper, rest lower. Blank -> ""."""
    s = (segment or "").strip()
    if not s:
        return ""
    return s[0].upper() + s[1:].lower()


def index_entries(category: str, subcategory: str = "", subsubcategory: str = "") -> List[Tuple[str, str]]:
    """(key, level) for every non-empty ancestor segment, deepest first."""
    raw = zip(LEVELS, (category, subcategory, subsubcategory))
    entries = [(normalize_segment(seg), level) for level, seg in raw]
    return [(key, level) for key, level in reversed(entries) if key]


class CategoryIndexUpdater:
    def __init__(self, repo: Optional[CategoryIndexRepository] = None):
        self.repo = repo or CategoryIndexRepository()

    def update(
        self,
        owner_id: str,
        owner_name: str,
        category: str,
        subcategory: str = "",
        subsubcategory: str = "",
        operation: str = "add",
    ) -> bool:
        """
        Best-effort: never raises. Returns True if the batch committed.

        All segment upserts go out in one batch; the caller's own writes are
        already committed and are never affected by this step.
        """
        owner_id = (owner_id or "").strip()
        if not owner_id:
            return False
        entries = index_entries(category, subcategory, subsubcategory)
        if not entries:
            return False
        owner = {"shopId": owner_id, "shopName": owner_name or "Unknown Shop"}
        try:
            if operation == "add":
                self.repo.add_owner(entries, owner)
            elif operation == "remove":
                self.repo.remove_owner(entries, owner)
            else:
                raise ValueError(f"unknown_operation:{operation}")
        except Exception as e:
            log.error(
                "category_index_failed",
                extra={
                    "extra": {
                        "event": "category_index_failed",
                        "operation": operation,
                        "shop_id": owner_id,
                        "keys": [k for k, _ in entries],
                        "error_type": type(e).__name__,
                        "message": str(e),
                    }
                },
                exc_info=True,
            )
            return False
        log.info(
            "category_index_updated",
            extra={
                "extra": {
                    "event": "category_index_updated",
                    "operation": operation,
                    "shop_id": owner_id,
                    "keys": [k for k, _ in entries],
                }
            },
        )
        return True
