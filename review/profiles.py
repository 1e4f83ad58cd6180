from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, FrozenSet, Mapping, Optional, Tuple

from models.schema import (
    COL_AD_SUBMISSIONS,
    COL_PRODUCT_APPLICATIONS,
    COL_PRODUCTS,
    COL_RESTAURANT_APPLICATIONS,
    COL_RESTAURANTS,
    COL_SHOP_APPLICATIONS,
    COL_SHOP_PRODUCTS,
    COL_SHOPS,
)
from models.submission import (
    REFERENCE_ALIASES,
    Coercions,
    optional_float,
    optional_int,
    optional_str,
    safe_float,
    safe_int,
    safe_str,
    safe_str_list,
)

# Applicant-only contact and payout details never reach a live record.
APPLICANT_FIELDS: FrozenSet[str] = frozenset(
    {"phone", "region", "address", "ibanOwnerName", "ibanOwnerSurname", "iban", "email"}
)
# Venues publish their street address.
VENUE_APPLICANT_FIELDS: FrozenSet[str] = APPLICANT_FIELDS - {"address"}
REVIEW_FIELDS: FrozenSet[str] = frozenset(
    {"status", "reviewedAt", "rejectionReason", "approvedRecordId", "approvedCollection", "existingRecordId"}
)
SYNC_FIELDS: FrozenSet[str] = frozenset({"needsSync", "updatedAt", "lastSyncedAt", "syncedAt"})

AD_TYPE_LABELS: Dict[str, str] = {
    "topBanner": "Top Banner",
    "thinBanner": "Thin Banner",
    "marketBanner": "Market Banner",
}


@dataclass(frozen=True)
class PromotionProfile:
    """One instantiation of the review & promotion workflow."""

    name: str
    source_collection: str
    organization_collection: str
    individual_collection: str
    linkage_field: str
    owner_user_field: str = "ownerId"
    reference_aliases: Tuple[str, ...] = REFERENCE_ALIASES
    id_mirror_field: Optional[str] = None
    related_field: Optional[str] = None
    applicant_fields: FrozenSet[str] = APPLICANT_FIELDS
    dropped_fields: FrozenSet[str] = field(default_factory=frozenset)
    coercions: Coercions = field(default_factory=dict)
    prepare: Optional[Callable[[Dict[str, Any]], Dict[str, Any]]] = None
    maintains_category_index: bool = False
    # False: the decision is recorded on the submission only.
    creates_live_record: bool = True
    approval_fields: Optional[Callable[[str, datetime], Dict[str, Any]]] = None
    requires_rejection_reason: bool = False
    approved_notification_type: Optional[str] = None
    rejected_notification_type: Optional[str] = None
    approved_messages: Mapping[str, str] = field(default_factory=dict)
    rejected_messages: Mapping[str, str] = field(default_factory=dict)
    notification_context: Optional[Callable[[Dict[str, Any], str], Dict[str, Any]]] = None
    send_welcome_email: bool = False
    owner_membership_field: Optional[str] = None
    verifies_owner: bool = False

    def all_dropped_fields(self) -> FrozenSet[str]:
        return (
            frozenset({"id", *self.reference_aliases})
            | self.applicant_fields
            | REVIEW_FIELDS
            | SYNC_FIELDS
            | self.dropped_fields
        )

    def linkage(self, data: Dict[str, Any]) -> str:
        v = data.get(self.linkage_field)
        return v.strip() if isinstance(v, str) else ""

    def target_collection(self, data: Dict[str, Any]) -> str:
        return self.organization_collection if self.linkage(data) else self.individual_collection


def owner_messages(templates: Mapping[str, str], context: Dict[str, Any]) -> Dict[str, str]:
    """
    Render per-language owner messages.

    Returns ``message_<lang>`` for every template plus ``message`` (English,
    or the first language when there is no English template). Unknown
    placeholders render empty.
    """
    values = defaultdict(str, {k: "" if v is None else v for k, v in context.items()})
    out: Dict[str, str] = {}
    for lang, template in templates.items():
        out[f"message_{lang}"] = template.format_map(values)
    if out:
        out["message"] = out.get("message_en") or next(iter(out.values()))
    return out


PRODUCT_COERCIONS: Coercions = {
    "productName": safe_str,
    "description": safe_str,
    "price": safe_float,
    "currency": lambda v: safe_str(v, "TL"),
    "condition": lambda v: safe_str(v, "Brand New"),
    "imageUrls": safe_str_list,
    "availableColors": safe_str_list,
    "quantity": safe_int,
    "category": lambda v: safe_str(v, "Uncategorized"),
    "subcategory": safe_str,
    "subsubcategory": safe_str,
    "sellerName": lambda v: safe_str(v, "Unknown"),
    "deliveryOption": lambda v: safe_str(v, "Self Delivery"),
    "shopId": optional_str,
    "brandModel": optional_str,
    "videoUrl": optional_str,
    "bundlePrice": optional_float,
    "originalPrice": optional_float,
    "discountPercentage": optional_int,
    "discountThreshold": optional_int,
    "bestSellerRank": optional_int,
}


def prepare_shop(data: Dict[str, Any]) -> Dict[str, Any]:
    out = dict(data)
    cover = out.pop("coverImageUrl", None)
    if isinstance(cover, str) and "coverImageUrls" not in out:
        out["coverImageUrls"] = [u.strip() for u in cover.split(",") if u.strip()]
    for key, default in (
        ("isBoosted", False),
        ("stockBadgeAcknowledged", True),
        ("transactionsBadgeAcknowledged", True),
        ("averageRating", 0.0),
        ("reviewCount", 0),
        ("clickCount", 0),
        ("followerCount", 0),
    ):
        out.setdefault(key, default)
    return out


def prepare_restaurant(data: Dict[str, Any]) -> Dict[str, Any]:
    out = prepare_shop(data)
    out.setdefault("isActive", True)
    return out


def ad_payment_fields(submission_id: str, now: datetime) -> Dict[str, Any]:
    return {"paymentLink": f"ad-payment-{submission_id}-{int(now.timestamp() * 1000)}"}


def ad_notification_context(data: Dict[str, Any], submission_id: str) -> Dict[str, Any]:
    ad_type = safe_str(data.get("adType"))
    return {
        "submissionId": submission_id,
        "adType": ad_type,
        "adTypeLabel": AD_TYPE_LABELS.get(ad_type, ad_type),
        "duration": data.get("duration"),
        "price": data.get("price"),
        "imageUrl": data.get("imageUrl"),
        "shopId": data.get("shopId"),
        "shopName": safe_str(data.get("shopName")),
    }


PRODUCTS = PromotionProfile(
    name="products",
    source_collection=COL_PRODUCT_APPLICATIONS,
    organization_collection=COL_SHOP_PRODUCTS,
    individual_collection=COL_PRODUCTS,
    linkage_field="shopId",
    id_mirror_field="ilanNo",
    related_field="relatedProductIds",
    coercions=PRODUCT_COERCIONS,
    maintains_category_index=True,
)

RESTAURANTS = PromotionProfile(
    name="restaurants",
    source_collection=COL_RESTAURANT_APPLICATIONS,
    organization_collection=COL_RESTAURANTS,
    individual_collection=COL_RESTAURANTS,
    linkage_field="ownerId",
    reference_aliases=("referenceNo", "referenceNumber"),
    applicant_fields=VENUE_APPLICANT_FIELDS,
    prepare=prepare_restaurant,
    approved_notification_type="restaurant_approved",
    rejected_notification_type="restaurant_disapproved",
    approved_messages={
        "en": "Tap to visit your restaurant.",
        "tr": "Restoranınızı ziyaret etmek için dokunun.",
        "ru": "Нажмите, чтобы посетить свой ресторан.",
    },
    rejected_messages={
        "en": "Your restaurant application has been rejected.",
        "tr": "Restoran başvurunuz reddedildi.",
        "ru": "Ваша заявка на ресторан была отклонена.",
    },
    send_welcome_email=True,
    owner_membership_field="memberOfRestaurants",
    verifies_owner=True,
)

SHOPS = PromotionProfile(
    name="shops",
    source_collection=COL_SHOP_APPLICATIONS,
    organization_collection=COL_SHOPS,
    individual_collection=COL_SHOPS,
    linkage_field="ownerId",
    reference_aliases=("referenceNo", "referenceNumber"),
    applicant_fields=VENUE_APPLICANT_FIELDS,
    prepare=prepare_shop,
    approved_notification_type="shop_approved",
    rejected_notification_type="shop_disapproved",
    approved_messages={
        "en": "Your shop application has been approved. Tap to visit your shop.",
        "tr": "Dükkan başvurunuz onaylandı. Dükkanınızı ziyaret etmek için dokunun.",
        "ru": "Ваша заявка на магазин одобрена. Нажмите, чтобы посетить свой магазин.",
    },
    rejected_messages={
        "en": "Your shop application has been rejected.",
        "tr": "Dükkan başvurunuz reddedildi.",
        "ru": "Ваша заявка на магазин была отклонена.",
    },
    verifies_owner=True,
)

ADS = PromotionProfile(
    name="ads",
    source_collection=COL_AD_SUBMISSIONS,
    organization_collection="",
    individual_collection="",
    linkage_field="shopId",
    owner_user_field="userId",
    creates_live_record=False,
    approval_fields=ad_payment_fields,
    requires_rejection_reason=True,
    approved_notification_type="ad_approved",
    rejected_notification_type="ad_rejected",
    approved_messages={
        "en": "Your {adTypeLabel} application for {shopName} has been approved. Click to proceed with payment.",
        "tr": "{shopName} mağazanız için {adTypeLabel} başvurunuz onaylandı. Ödeme yapmak için tıklayın.",
    },
    rejected_messages={
        "en": "Your {adTypeLabel} application for {shopName} has been rejected. Reason: {rejectionReason}",
        "tr": "{shopName} mağazanız için {adTypeLabel} başvurunuz reddedildi. Neden: {rejectionReason}",
    },
    notification_context=ad_notification_context,
)

PROFILES: Dict[str, PromotionProfile] = {p.name: p for p in (PRODUCTS, RESTAURANTS, SHOPS, ADS)}


def get_profile(name: str) -> PromotionProfile:
    try:
        return PROFILES[name]
    except KeyError:
        raise ValueError(f"unknown_profile:{name}") from None
