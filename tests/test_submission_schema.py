from datetime import datetime, timezone

from models.submission import (
    UNSET,
    SubmissionRecord,
    optional_float,
    resolve_reference_no,
    resolve_status,
    safe_int,
    strip_unset,
)
from review.profiles import PRODUCT_COERCIONS


def test_reference_number_reads_legacy_field_names():
    assert resolve_reference_no({"referenceNo": "R-1"}) == "R-1"
    assert resolve_reference_no({"referenceNumber": "R-2"}) == "R-2"
    assert resolve_reference_no({"ilan_no": "R-3"}) == "R-3"
    assert resolve_reference_no({"ilanNo": 42}) == "42"
    assert resolve_reference_no({"referenceNo": "  ", "ilan_no": "R-4"}) == "R-4"
    assert resolve_reference_no({}) == ""


def test_missing_status_reads_as_pending():
    assert resolve_status({}) == "pending"
    assert resolve_status({"status": ""}) == "pending"
    assert resolve_status({"status": "Approved"}) == "approved"
    assert resolve_status({"status": "disapproved"}) == "rejected"


def test_strip_unset_keeps_none():
    assert strip_unset({"a": UNSET, "b": None, "c": 0}) == {"b": None, "c": 0}


def test_coercions():
    assert optional_float(None) is UNSET
    assert optional_float("12.5") == 12.5
    assert safe_int("7") == 7
    assert safe_int("abc", 3) == 3
    assert safe_int(True) == 0


def test_record_from_product_document():
    created = datetime(2024, 5, 1, tzinfo=timezone.utc)
    rec = SubmissionRecord.from_document(
        "abc123",
        {"productName": "Phone", "price": "100", "createdAt": created, "ilan_no": "", "bundlePrice": None},
        coercions=PRODUCT_COERCIONS,
    )
    assert rec.id == "abc123"
    assert rec.is_pending
    assert rec.reference_no == ""
    assert rec.created_at == created
    assert rec.display_name == "Phone"
    assert rec.data["price"] == 100.0
    assert rec.data["category"] == "Uncategorized"
    assert rec.data["bundlePrice"] is UNSET
    assert rec.data["shopId"] is UNSET
