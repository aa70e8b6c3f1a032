"""Tests for the booking status codec (label <-> code)."""

import pytest
from hypothesis import given
from hypothesis import strategies as st

from trade_kernel.domain.booking_status import (
    CODE_TO_LABEL,
    LABEL_TO_CODE,
    BookingStatus,
    lookup_code,
    lookup_label,
    require_code,
    to_code,
    to_label,
)
from trade_kernel.exceptions import InvalidBookingStatusError

LABELS = ["Pending", "Confirmed", "In Transit", "Delivered", "Cancelled"]


class TestTable:

    def test_codes_and_labels(self):
        assert dict(CODE_TO_LABEL) == dict(zip(range(1, 6), LABELS))
        assert LABEL_TO_CODE["In Transit"] == 3
        assert BookingStatus.IN_TRANSIT.label == "In Transit"

    def test_table_is_read_only(self):
        with pytest.raises(TypeError):
            CODE_TO_LABEL[6] = "Lost"


class TestLenientLookups:

    @pytest.mark.parametrize("label", LABELS)
    def test_label_round_trip(self, label):
        assert to_label(to_code(label)) == label

    @pytest.mark.parametrize("code", [1, 2, 3, 4, 5])
    def test_code_round_trip(self, code):
        assert to_code(to_label(code)) == code

    def test_numeric_input_passes_through(self):
        assert to_code(4) == 4
        assert to_code(99) == 99

    @pytest.mark.parametrize("raw", ["Lost at sea", "", None, "pending", "3"])
    def test_unknown_label_falls_back_to_pending(self, raw):
        assert to_code(raw) == 1

    @pytest.mark.parametrize("raw", [0, 6, -1, None])
    def test_unknown_code_reads_as_pending(self, raw):
        assert to_label(raw) == "Pending"

    def test_fallback_is_logged(self, captured_logs):
        to_code("Lost at sea")
        to_label(42)

        fallbacks = [r for r in captured_logs() if r["message"] == "booking_status_fallback"]
        assert [r["direction"] for r in fallbacks] == ["to_code", "to_label"]
        assert all(r["level"] == "WARNING" for r in fallbacks)


class TestStrictLookups:

    def test_lookup_code_flags_unknown(self):
        result = lookup_code("Lost at sea")
        assert not result.recognized
        assert result.code == 1
        assert "Lost at sea" in result.error

    def test_lookup_code_accepts_code(self):
        result = lookup_code(5)
        assert result.recognized
        assert result.label == "Cancelled"
        assert result.error is None

    def test_lookup_rejects_bool(self):
        assert not lookup_code(True).recognized
        assert not lookup_label(True).recognized

    def test_require_code(self):
        assert require_code("Delivered") == 4
        with pytest.raises(InvalidBookingStatusError) as exc_info:
            require_code("Lost at sea")
        assert exc_info.value.http_status == 400


@given(st.text(max_size=30).filter(lambda s: s not in LABEL_TO_CODE))
def test_any_unknown_label_maps_to_pending(raw):
    assert to_code(raw) == 1
    assert not lookup_code(raw).recognized
