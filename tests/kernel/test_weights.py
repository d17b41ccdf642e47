"""
Tests for load weight arithmetic and the derived fields on LoadInfo.

Display values round half-up to two places; the raw tonnage is never
rounded.
"""

from datetime import datetime, timezone
from decimal import Decimal
from types import SimpleNamespace
from uuid import uuid4

import pytest

from haymarket_kernel.domain.dtos import LoadInfo
from haymarket_kernel.domain.weights import (
    avg_bale_weight,
    net_weight,
    round_half_up,
    tons_from_pounds,
)


class TestWeights:

    def test_net_weight(self):
        assert net_weight(Decimal("52000"), Decimal("16000")) == Decimal("36000")

    def test_tons_from_pounds_unrounded(self):
        assert tons_from_pounds(Decimal("36000")) == Decimal("18")
        assert tons_from_pounds(Decimal("1001")) == Decimal("0.5005")

    def test_custom_ton(self):
        assert tons_from_pounds(Decimal("2204.62"), Decimal("2204.62")) == Decimal("1")

    @pytest.mark.parametrize(
        "value,expected",
        [
            (Decimal("0.125"), Decimal("0.13")),
            (Decimal("0.124"), Decimal("0.12")),
            (Decimal("2.675"), Decimal("2.68")),
            (Decimal("-0.125"), Decimal("-0.13")),
        ],
    )
    def test_round_half_up(self, value, expected):
        assert round_half_up(value) == expected

    def test_avg_bale_weight(self):
        assert avg_bale_weight(Decimal("36000"), 24) == Decimal("1500")

    def test_avg_bale_weight_zero_bales(self):
        assert avg_bale_weight(Decimal("36000"), 0) == Decimal("0")
        assert avg_bale_weight(Decimal("36000"), None) == Decimal("0")


class TestLoadInfoDerivation:

    def _load(self, gross, tare, bales):
        return SimpleNamespace(
            id=uuid4(),
            load_number="LD-1001",
            po_id=uuid4(),
            listing_id=uuid4(),
            gross_weight=Decimal(gross),
            tare_weight=Decimal(tare),
            total_bale_count=bales,
            wet_bales_count=0,
            delivery_datetime=datetime(2024, 1, 1, tzinfo=timezone.utc),
            entered_by_id=uuid4(),
            quality_notes="Yard 3",
        )

    def test_derived_fields(self):
        info = LoadInfo.from_model(self._load("52000", "16000", 24))
        assert info.net_weight == Decimal("36000.00")
        assert info.net_tons == Decimal("18.00")
        assert info.avg_bale_weight == Decimal("1500.00")
        assert info.location == "Yard 3"

    def test_rounding_of_display_values(self):
        info = LoadInfo.from_model(self._load("46001", "16000", 7))
        # 30001 lb -> 15.0005 t ; 30001 / 7 = 4285.857...
        assert info.net_tons == Decimal("15.00")
        assert info.avg_bale_weight == Decimal("4285.86")
