"""Unit tests for the fixed-point money helpers."""

from dataclasses import dataclass

import pytest

from ledgerline.domains.ledger.money import (
    bps_of,
    cents_to_micro,
    format_micro_as_dollars,
    micro_to_cents_rounded,
    percent_of,
)


@dataclass
class RoundCase:
    label: str
    amount: int
    rate: int
    expected: int


PERCENT_CASES = [
    RoundCase("twenty_percent_of_20_dollars", cents_to_micro(2000), 20, cents_to_micro(400)),
    RoundCase("twenty_percent_of_25_dollars", cents_to_micro(2500), 20, cents_to_micro(500)),
    RoundCase("half_rounds_up", 5, 10, 1),
    RoundCase("below_half_rounds_down", 4, 10, 0),
    RoundCase("zero_amount", 0, 20, 0),
]

BPS_CASES = [
    RoundCase("platform_fee_on_20_cents", 20_000_000, 1400, 2_800_000),
    RoundCase("platform_fee_on_2_cents", 2_000_000, 1400, 280_000),
    RoundCase("half_rounds_up", 1, 5000, 1),
    RoundCase("below_half_rounds_down", 1, 4999, 0),
    RoundCase("zero_bps", 123_456, 0, 0),
]


@pytest.mark.parametrize("case", PERCENT_CASES, ids=lambda c: c.label)
def test_percent_of(case: RoundCase):
    assert percent_of(case.amount, case.rate) == case.expected


@pytest.mark.parametrize("case", BPS_CASES, ids=lambda c: c.label)
def test_bps_of(case: RoundCase):
    assert bps_of(case.amount, case.rate) == case.expected


class TestCentsConversion:
    def test_cents_to_micro_is_exact(self):
        assert cents_to_micro(200) == 200_000_000
        assert cents_to_micro(0) == 0

    def test_rounding_to_cents_is_half_up(self):
        assert micro_to_cents_rounded(499_999) == 0
        assert micro_to_cents_rounded(500_000) == 1
        assert micro_to_cents_rounded(3_177_200_000) == 3177

    def test_large_amounts_stay_exact(self):
        # Well past 2**63 micro-cents
        huge = cents_to_micro(10**15)
        assert bps_of(huge, 1400) == cents_to_micro(10**15) * 14 // 100


class TestFormatting:
    def test_credit(self):
        assert format_micro_as_dollars(cents_to_micro(2500)) == "$25.00"

    def test_debit(self):
        assert format_micro_as_dollars(-22_800_000) == "-$0.23"

    def test_thousands_separator(self):
        assert format_micro_as_dollars(cents_to_micro(123_456_78)) == "$123,456.78"
