from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Query

from search.typesense_client import SearchClient
from security.operator_auth import OperatorClaims

router = APIRouter()


@router.get("/search/orders")
def search_orders(
    q: str = "",
    page: int = Query(default=0, ge=0),
    hits_per_page: int = Query(default=50, ge=1, le=250),
    gathering_status: Optional[List[str]] = Query(default=None),
    shipment_status: Optional[List[str]] = Query(default=None),
    distribution_status: Optional[List[str]] = Query(default=None),
    all_items_gathered: Optional[bool] = None,
    claims: dict = OperatorClaims,
):
    filters = {
        "gatheringStatus": gathering_status,
        "shipmentStatus": shipment_status,
        "distributionStatus": distribution_status,
        "allItemsGathered": all_items_gathered,
    }
    return {"ok": True, **SearchClient().search_orders(q, filters=filters, page=page, hits_per_page=hits_per_page)}
