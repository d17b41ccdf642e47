"""
Tests for the hash-chained audit trail.

Verifies:
- Each event links to its predecessor's hash
- validate_chain accepts an untouched chain and rejects edited payloads
- get_trail returns one entity's events in sequence order
- Decimal and UUID payload values are stored JSON-safe
"""

from decimal import Decimal
from uuid import uuid4

import pytest

from haymarket_kernel.exceptions import AuditChainBrokenError
from haymarket_kernel.models.audit_event import AuditAction
from haymarket_kernel.services.auditor_service import AuditorService


@pytest.fixture
def auditor(session, deterministic_clock):
    return AuditorService(session, deterministic_clock)


class TestChain:

    def test_empty_chain_is_valid(self, auditor):
        assert auditor.validate_chain() is True

    def test_genesis_has_no_prev_hash(self, auditor, grower_admin):
        event = auditor.record_listing_created(uuid4(), "100001", grower_admin.user_id)
        assert event.prev_hash is None
        assert len(event.hash) == 64

    def test_links_to_predecessor(self, auditor, grower_admin):
        first = auditor.record_listing_created(uuid4(), "100001", grower_admin.user_id)
        second = auditor.record_listing_created(uuid4(), "100002", grower_admin.user_id)
        assert second.prev_hash == first.hash
        assert second.seq > first.seq

    def test_validates_after_mixed_events(self, auditor, grower_admin, buyer_admin):
        po_id = uuid4()
        auditor.record_listing_created(uuid4(), "100001", grower_admin.user_id)
        auditor.record_po_signed(po_id, "buyer", "Bea Buyer", None, False, buyer_admin.user_id)
        auditor.record_contract_closed(
            po_id, "ACTIVE", Decimal("18"), Decimal("500"), grower_admin.user_id
        )
        assert auditor.validate_chain() is True

    def test_edited_payload_detected(self, session, auditor, grower_admin, buyer_admin):
        auditor.record_listing_created(uuid4(), "100001", grower_admin.user_id)
        signed = auditor.record_po_signed(
            uuid4(), "buyer", "Bea Buyer", None, False, buyer_admin.user_id
        )

        signed.new_values = {**signed.new_values, "typed_name": "Someone Else"}
        session.flush()

        with pytest.raises(AuditChainBrokenError) as exc_info:
            auditor.validate_chain()
        assert exc_info.value.audit_event_id == str(signed.id)


class TestTrail:

    def test_trail_for_one_entity(self, auditor, grower_admin, buyer_admin):
        po_id = uuid4()
        auditor.record_terms_updated(
            po_id,
            {"quality_notes": None},
            {"quality_notes": "No mold"},
            grower_admin.user_id,
        )
        auditor.record_listing_created(uuid4(), "100001", grower_admin.user_id)
        auditor.record_po_signed(po_id, "buyer", "Bea Buyer", "data:image/png;base64,AA", False, buyer_admin.user_id)

        trail = auditor.get_trail("PurchaseOrder", po_id)
        assert [r.action for r in trail] == [
            AuditAction.UPDATE_PO_TERMS.value,
            AuditAction.SIGN_PO.value,
        ]
        assert trail[0].old_values == {"quality_notes": None}
        assert trail[1].new_values["signature_image"] == "data:image/png;base64,AA"

    def test_payload_is_json_safe(self, auditor, grower_admin):
        po_id = uuid4()
        auditor.record_contract_closed(
            po_id, "ACTIVE", Decimal("18.5"), Decimal("500"), grower_admin.user_id
        )
        (record,) = auditor.get_trail("PurchaseOrder", po_id)
        assert isinstance(record.new_values["delivered_tons"], str)
        assert Decimal(record.new_values["delivered_tons"]) == Decimal("500")
