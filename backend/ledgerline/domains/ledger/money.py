"""Fixed-point money arithmetic.

All ledger amounts are integer micro-cents (1 cent = 1,000,000 micro-cents).
Every helper here takes and returns ints; rounding is half-up at the stated
boundary and never goes through floating point. Python ints do not overflow,
so bounds are enforced at the API boundary instead.
"""

MICRO_CENTS_PER_CENT = 1_000_000
BPS_PER_WHOLE = 10_000


def percent_of(amount_micro: int, percent_whole: int) -> int:
    """``percent_whole`` percent of ``amount_micro``, rounded half-up."""
    return (amount_micro * percent_whole + 50) // 100


def bps_of(amount_micro: int, bps: int) -> int:
    """``bps`` basis points of ``amount_micro``, rounded half-up."""
    return (amount_micro * bps + 5000) // BPS_PER_WHOLE


def micro_to_cents_rounded(micro: int) -> int:
    """Whole cents for display and reporting. Never use for ledger truth."""
    return (micro + 500_000) // MICRO_CENTS_PER_CENT


def cents_to_micro(cents: int) -> int:
    """Exact conversion from whole cents."""
    return cents * MICRO_CENTS_PER_CENT


def format_micro_as_dollars(micro: int) -> str:
    """Render an amount like ``$25.00`` (``-$0.12`` for debits)."""
    cents = micro_to_cents_rounded(micro)
    sign = "-" if cents < 0 else ""
    dollars, rem = divmod(abs(cents), 100)
    return f"{sign}${dollars:,}.{rem:02d}"
