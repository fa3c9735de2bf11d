import logging
import sys
import uuid

import pytest
from rest_framework.exceptions import NotFound, PermissionDenied, ValidationError

from common.logging import REDACTED, SensitiveDataFilter, mask_text
from common.results import BACKEND, CONFLICT, FORBIDDEN, INVALID, NOT_FOUND, Conflict, OpResult, ServiceUnavailable, raise_for_result
from common.throttling import WindowRateThrottle


class TestWindowRateThrottle:
    @pytest.mark.parametrize(
        "rate, expected",
        [
            ("10/15m", (10, 900)),
            ("5/1h", (5, 3600)),
            ("30/m", (30, 60)),
            ("30/minute", (30, 60)),
            ("100/day", (100, 86400)),
            (None, (None, None)),
        ],
    )
    def test_parse_rate(self, rate, expected):
        assert WindowRateThrottle().parse_rate(rate) == expected


class TestRaiseForResult:
    def test_success_is_noop(self):
        assert raise_for_result(OpResult.ok()) is None

    @pytest.mark.parametrize(
        "code, exc",
        [(INVALID, ValidationError), (FORBIDDEN, PermissionDenied), (NOT_FOUND, NotFound), (CONFLICT, Conflict), (BACKEND, ServiceUnavailable)],
    )
    def test_failure_maps_to_api_exception(self, code, exc):
        with pytest.raises(exc):
            raise_for_result(OpResult.fail("nope", code))

    def test_invalid_keeps_message_as_detail(self):
        with pytest.raises(ValidationError) as ei:
            raise_for_result(OpResult.fail("Title is required.", INVALID))
        assert ei.value.detail["detail"] == "Title is required."


class TestSensitiveDataFilter:
    def _record(self, msg, args, exc_info=None):
        return logging.LogRecord("anxy", logging.INFO, __file__, 1, msg, args, exc_info)

    def test_masks_uuid_and_email_in_message(self):
        text = mask_text("user 3f2a9c4e-1b2d-4e5f-8a9b-0c1d2e3f4a5b is alice@example.com")

        assert "3f2a9c4e" not in text
        assert text.endswith("a***@example.com")
        assert "uuid-4a5b" in text

    def test_redacts_secret_keys_in_args(self):
        record = self._record("login %(identifier)s %(password)s", {"identifier": "bob@example.com", "password": "hunter2"})

        assert SensitiveDataFilter().filter(record) is True
        assert record.args["password"] == REDACTED
        assert record.getMessage() == f"login b***@example.com {REDACTED}"

    def test_masks_positional_args(self):
        record = self._record("mark read %s", ("3f2a9c4e-1b2d-4e5f-8a9b-0c1d2e3f4a5b",))

        SensitiveDataFilter().filter(record)

        assert record.getMessage() == "mark read uuid-4a5b"

    def test_masks_uuid_objects_in_args(self):
        record = self._record("follow_user failed follower=%s", (uuid.UUID("12345678-1234-1234-1234-123456789abc"),))

        SensitiveDataFilter().filter(record)

        assert record.getMessage() == "follow_user failed follower=uuid-9abc"

    def test_masks_identifiers_in_traceback(self):
        try:
            raise RuntimeError("duplicate key follower_id=12345678-1234-1234-1234-123456789abc")
        except RuntimeError:
            record = self._record("follow_user failed", None, exc_info=sys.exc_info())

        SensitiveDataFilter().filter(record)
        rendered = logging.Formatter().format(record)

        assert "12345678-1234" not in rendered
        assert "follower_id=uuid-9abc" in rendered
