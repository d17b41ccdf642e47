"""
All-or-nothing writes.

When the last step of a multi-row write fails, none of the earlier steps
may survive: the negotiation stays pending, no purchase order or stack
link exists and the listing is still available.  A failed signature or
load edit leaves the purchase order and the load exactly as they were.
"""

from decimal import Decimal

import pytest
from sqlalchemy import func, select

from haymarket_kernel.models.audit_event import AuditEvent
from haymarket_kernel.models.listing import Listing
from haymarket_kernel.models.load import Load, LoadEdit
from haymarket_kernel.models.negotiation import Negotiation
from haymarket_kernel.models.purchase_order import POStack, PurchaseOrder
from haymarket_modules.delivery import LoadChanges
from haymarket_modules.purchase_orders import AcceptListingCommand, SignCommand


class AuditStoreDown(Exception):
    pass


def _fail(*args, **kwargs):
    raise AuditStoreDown("audit store unavailable")


def _count(session, model) -> int:
    return session.execute(select(func.count()).select_from(model)).scalar_one()


def test_accept_rolls_back(session, negotiation_service, make_listing, make_offer, grower_admin, monkeypatch, captured_logs):
    listing = make_listing()
    offer = make_offer(listing=listing)
    audit_before = _count(session, AuditEvent)
    monkeypatch.setattr(negotiation_service._kit.auditor, "record_negotiation_accepted", _fail)

    with pytest.raises(AuditStoreDown):
        negotiation_service.accept(offer.id, grower_admin)

    session.expire_all()
    assert session.get(Negotiation, offer.id).status == "pending"
    assert session.get(Negotiation, offer.id).purchase_order_id is None
    assert session.get(Listing, listing.id).status == "available"
    assert _count(session, PurchaseOrder) == 0
    assert _count(session, POStack) == 0
    assert _count(session, AuditEvent) == audit_before
    assert any(r["message"] == "offer_accept_rolled_back" for r in captured_logs())


def test_accept_retry_after_failure(session, negotiation_service, make_offer, grower_admin, monkeypatch):
    offer = make_offer()
    with monkeypatch.context() as patch:
        patch.setattr(negotiation_service._kit.auditor, "record_negotiation_accepted", _fail)
        with pytest.raises(AuditStoreDown):
            negotiation_service.accept(offer.id, grower_admin)

    result = negotiation_service.accept(offer.id, grower_admin)
    assert result.purchase_order.status == "DRAFT"
    assert _count(session, PurchaseOrder) == 1


def test_accept_at_price_rolls_back(session, po_service, make_listing, buyer_admin, monkeypatch):
    listing = make_listing()
    monkeypatch.setattr(po_service._kit.auditor, "record_listing_accepted_and_signed", _fail)

    with pytest.raises(AuditStoreDown):
        po_service.accept_listing_at_price(
            AcceptListingCommand(listing_id=listing.id, typed_name="Bea Buyer"), buyer_admin
        )

    session.expire_all()
    assert session.get(Listing, listing.id).status == "available"
    assert _count(session, PurchaseOrder) == 0
    assert _count(session, Negotiation) == 0


def test_delivery_rolls_back(session, delivery_service, po_service, make_active_po, log_load, grower_admin, monkeypatch):
    po = make_active_po()
    monkeypatch.setattr(delivery_service._kit.auditor, "record_delivery_logged", _fail)

    with pytest.raises(AuditStoreDown):
        log_load(po.id)

    session.expire_all()
    assert _count(session, Load) == 0
    assert po_service.get_purchase_order(po.id, grower_admin).delivered_tons == Decimal("0")


def test_sign_rolls_back(session, po_service, make_draft_po, grower_admin, monkeypatch):
    draft = make_draft_po()
    monkeypatch.setattr(po_service._kit.auditor, "record_po_signed", _fail)

    with pytest.raises(AuditStoreDown):
        po_service.sign(draft.id, SignCommand(typed_name="Gus Grower"), grower_admin)

    session.expire_all()
    po = session.get(PurchaseOrder, draft.id)
    assert po.status == "DRAFT"
    assert po.signed_by_grower_id is None
    assert po.signed_at is None
    assert po.signed_by_buyer_id == draft.signed_by_buyer_id


def test_edit_load_rolls_back(session, delivery_service, po_service, make_active_po, log_load, buyer_admin, monkeypatch):
    po = make_active_po()
    load = log_load(po.id)
    monkeypatch.setattr(delivery_service._kit.auditor, "record_load_edited", _fail)

    with pytest.raises(AuditStoreDown):
        delivery_service.edit_load(
            load.id, LoadChanges(gross_weight=Decimal("60000"), tare_weight=Decimal("15000")), buyer_admin
        )

    session.expire_all()
    assert _count(session, LoadEdit) == 0
    stored = session.get(Load, load.id)
    assert stored.gross_weight == Decimal("52000")
    assert stored.tare_weight == Decimal("16000")
    assert po_service.get_purchase_order(po.id, buyer_admin).delivered_tons == Decimal("18")
