import pytest
from google.api_core import exceptions as gexc

from review.errors import WriteFailed, WriteFailureKind, classify_write_error


@pytest.mark.parametrize(
    "exc,kind",
    [
        (gexc.PermissionDenied("Missing or insufficient permissions."), WriteFailureKind.PERMISSION),
        (gexc.Unauthenticated("token expired"), WriteFailureKind.PERMISSION),
        (gexc.ServiceUnavailable("unavailable"), WriteFailureKind.NETWORK),
        (gexc.DeadlineExceeded("deadline"), WriteFailureKind.NETWORK),
        (ConnectionError("reset"), WriteFailureKind.NETWORK),
        (gexc.InvalidArgument("bad field"), WriteFailureKind.OTHER),
        # Message text alone never decides the kind.
        (RuntimeError("permission denied"), WriteFailureKind.OTHER),
    ],
)
def test_classify_write_error(exc, kind):
    assert classify_write_error(exc) is kind


def test_write_failed_carries_operator_message():
    err = WriteFailed("abc", gexc.ServiceUnavailable("down"))
    assert err.submission_id == "abc"
    assert err.kind is WriteFailureKind.NETWORK
    assert err.detail == "write_failed:network"
    assert "Network" in err.message
