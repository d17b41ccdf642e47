"""
Weight and tonnage arithmetic for delivered loads.

All values are ``Decimal``.  Scale tickets record pounds; contracts are in
short tons.  Display values round half-up to two places; the running
``delivered_tons`` total on a purchase order accumulates the unrounded
tonnage.
"""

from decimal import ROUND_HALF_UP, Decimal

POUNDS_PER_TON = Decimal("2000")
DISPLAY_PLACES = 2


def round_half_up(value: Decimal, places: int = DISPLAY_PLACES) -> Decimal:
    return Decimal(value).quantize(Decimal(1).scaleb(-places), rounding=ROUND_HALF_UP)


def net_weight(gross_weight: Decimal, tare_weight: Decimal) -> Decimal:
    return Decimal(gross_weight) - Decimal(tare_weight)


def tons_from_pounds(
    pounds: Decimal, pounds_per_ton: Decimal = POUNDS_PER_TON
) -> Decimal:
    """Unrounded short tons for ``pounds``."""
    return Decimal(pounds) / Decimal(pounds_per_ton)


def avg_bale_weight(net: Decimal, total_bale_count: int | None) -> Decimal:
    """Net pounds per bale, or zero when there are no bales."""
    if not total_bale_count:
        return Decimal("0")
    return Decimal(net) / Decimal(total_bale_count)
