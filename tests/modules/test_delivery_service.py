"""
Tests for the Delivery Module Service.

Validates:
- log_delivery: load numbering, derived weights, delivered_tons accumulation
- preconditions: ACTIVE only, positive net weight, participants only
- edit_load: per-field history, delta applied to the PO total, no-op edits
- reads: per-PO and per-organization load lists, history, redaction
"""

from decimal import Decimal
from uuid import uuid4

import pytest

from haymarket_kernel.exceptions import (
    InputValidationError,
    InsufficientRoleError,
    LoadNotFoundError,
    NoChangesError,
    NonPositiveNetWeightError,
    NotAParticipantError,
    PurchaseOrderStatusError,
)
from haymarket_kernel.models.audit_event import AuditAction
from haymarket_kernel.services.auditor_service import AuditorService
from haymarket_modules.delivery import LoadChanges, LogDeliveryCommand


def _delivered(po_service, po_id, actor):
    return po_service.get_purchase_order(po_id, actor).delivered_tons


class TestLogDelivery:

    def test_records_load(self, make_active_po, log_load, buyer_admin, deterministic_clock):
        po = make_active_po()
        load = log_load(po.id, location="North barn")

        assert load.load_number == "LD-1001"
        assert load.po_id == po.id
        assert load.po_number == "PO-10001"
        assert load.listing_id == po.listing_id
        assert load.net_weight == Decimal("36000.00")
        assert load.net_tons == Decimal("18.00")
        assert load.avg_bale_weight == Decimal("1500.00")
        assert load.total_bale_count == 24
        assert load.wet_bales_count == 0
        assert load.entered_by_id == buyer_admin.user_id
        assert load.location == "North barn"

    def test_accumulates_tons(self, po_service, make_active_po, log_load, grower_admin):
        po = make_active_po()
        log_load(po.id)
        second = log_load(po.id, gross=Decimal("50000"), tare=Decimal("16000"))

        assert second.load_number == "LD-1002"
        assert _delivered(po_service, po.id, grower_admin) == Decimal("35")

    def test_over_delivery_allowed(self, po_service, make_active_po, log_load, grower_admin):
        po = make_active_po(estimated_tons=Decimal("10"))
        log_load(po.id)
        assert _delivered(po_service, po.id, grower_admin) == Decimal("18")

    def test_draft_rejected(self, make_draft_po, log_load):
        draft = make_draft_po()
        with pytest.raises(PurchaseOrderStatusError):
            log_load(draft.id)

    def test_completed_rejected(self, po_service, make_active_po, log_load, grower_admin):
        po = make_active_po()
        po_service.close(po.id, grower_admin)
        with pytest.raises(PurchaseOrderStatusError):
            log_load(po.id)

    @pytest.mark.parametrize("gross,tare", [("16000", "16000"), ("15000", "16000")])
    def test_non_positive_net(self, make_active_po, log_load, gross, tare):
        po = make_active_po()
        with pytest.raises(NonPositiveNetWeightError):
            log_load(po.id, gross=Decimal(gross), tare=Decimal(tare))

    def test_rejected_load_leaves_total(self, po_service, make_active_po, log_load, grower_admin):
        po = make_active_po()
        with pytest.raises(NonPositiveNetWeightError):
            log_load(po.id, gross=Decimal("100"), tare=Decimal("200"))
        assert _delivered(po_service, po.id, grower_admin) == 0

    def test_outsider(self, delivery_service, make_active_po, outsider_admin):
        po = make_active_po()
        with pytest.raises(NotAParticipantError):
            delivery_service.log_delivery(
                po.id,
                LogDeliveryCommand(
                    total_bale_count=24,
                    wet_bales_count=0,
                    gross_weight=Decimal("52000"),
                    tare_weight=Decimal("16000"),
                ),
                outsider_admin,
            )

    def test_viewer(self, delivery_service, make_active_po, grower_viewer):
        po = make_active_po()
        with pytest.raises(InsufficientRoleError):
            delivery_service.log_delivery(
                po.id,
                LogDeliveryCommand(
                    total_bale_count=24,
                    wet_bales_count=0,
                    gross_weight=Decimal("52000"),
                    tare_weight=Decimal("16000"),
                ),
                grower_viewer,
            )

    @pytest.mark.parametrize(
        "fields,bad_field",
        [
            ({"total_bale_count": 0}, "total_bale_count"),
            ({"wet_bales_count": -1}, "wet_bales_count"),
            ({"gross_weight": Decimal("0")}, "gross_weight"),
            ({"tare_weight": 16000.0}, "tare_weight"),
        ],
    )
    def test_ticket_validation(self, fields, bad_field):
        ticket = {
            "total_bale_count": 24,
            "wet_bales_count": 0,
            "gross_weight": Decimal("52000"),
            "tare_weight": Decimal("16000"),
        }
        ticket.update(fields)
        with pytest.raises(InputValidationError) as exc_info:
            LogDeliveryCommand(**ticket)
        assert [e["field"] for e in exc_info.value.field_errors] == [bad_field]

    def test_audited(self, session, make_active_po, log_load):
        po = make_active_po()
        load = log_load(po.id)
        (record,) = AuditorService(session).get_trail("Load", load.id)
        assert record.action == AuditAction.LOG_DELIVERY.value
        assert record.new_values["net_tons"] == "18"
        assert record.new_values["load_number"] == "LD-1001"

    def test_logged_with_context(self, make_active_po, log_load, captured_logs, buyer_admin):
        po = make_active_po()
        log_load(po.id)
        (record,) = [r for r in captured_logs() if r["message"] == "delivery_logged"]
        assert record["operation"] == "log_delivery"
        assert record["entity_id"] == str(po.id)
        assert record["actor_id"] == str(buyer_admin.user_id)


class TestEditLoad:

    def test_changes_tracked_per_field(self, delivery_service, make_active_po, log_load, grower_manager):
        po = make_active_po()
        load = log_load(po.id)

        edited = delivery_service.edit_load(
            load.id,
            LoadChanges(gross_weight=Decimal("54000"), wet_bales_count=2),
            grower_manager,
        )
        assert edited.net_weight == Decimal("38000.00")
        assert edited.wet_bales_count == 2

        history = delivery_service.get_load_history(load.id, grower_manager)
        assert [(h.field_name, h.old_value, h.new_value) for h in history] == [
            ("wet_bales_count", "0", "2"),
            ("gross_weight", "52000", "54000"),
        ]
        assert {h.edited_by_id for h in history} == {grower_manager.user_id}

    def test_delta_applied(self, delivery_service, po_service, make_active_po, log_load, buyer_admin):
        po = make_active_po()
        load = log_load(po.id)
        delivery_service.edit_load(load.id, LoadChanges(tare_weight=Decimal("18000")), buyer_admin)
        # 36000 lb -> 34000 lb: -1 ton
        assert _delivered(po_service, po.id, buyer_admin) == Decimal("17")

    def test_total_is_not_recomputed(
        self, session, delivery_service, po_service, make_active_po, log_load, grower_admin
    ):
        po = make_active_po()
        load = log_load(po.id)
        po_service.close(po.id, grower_admin)
        assert _delivered(po_service, po.id, grower_admin) == Decimal("500")

        # an edit after close still moves the forced total by the delta only
        delivery_service.edit_load(load.id, LoadChanges(gross_weight=Decimal("54000")), grower_admin)
        assert _delivered(po_service, po.id, grower_admin) == Decimal("501")

    def test_unchanged_values_ignored(self, delivery_service, make_active_po, log_load, buyer_admin):
        po = make_active_po()
        load = log_load(po.id)
        delivery_service.edit_load(
            load.id,
            LoadChanges(gross_weight=Decimal("52000"), total_bale_count=25),
            buyer_admin,
        )
        history = delivery_service.get_load_history(load.id, buyer_admin)
        assert [h.field_name for h in history] == ["total_bale_count"]

    def test_no_changes(self, delivery_service, make_active_po, log_load, buyer_admin):
        po = make_active_po()
        load = log_load(po.id)
        with pytest.raises(NoChangesError):
            delivery_service.edit_load(load.id, LoadChanges(), buyer_admin)
        with pytest.raises(NoChangesError):
            delivery_service.edit_load(
                load.id, LoadChanges(gross_weight=Decimal("52000")), buyer_admin
            )

    def test_net_must_stay_positive(self, delivery_service, po_service, make_active_po, log_load, buyer_admin):
        po = make_active_po()
        load = log_load(po.id)
        with pytest.raises(NonPositiveNetWeightError):
            delivery_service.edit_load(load.id, LoadChanges(tare_weight=Decimal("52000")), buyer_admin)
        assert delivery_service.get_load_history(load.id, buyer_admin) == ()
        assert _delivered(po_service, po.id, buyer_admin) == Decimal("18")

    def test_location_history_name(self, delivery_service, make_active_po, log_load, buyer_admin):
        po = make_active_po()
        load = log_load(po.id)
        edited = delivery_service.edit_load(load.id, LoadChanges(location="Gate 3"), buyer_admin)
        assert edited.location == "Gate 3"
        (entry,) = delivery_service.get_load_history(load.id, buyer_admin)
        assert (entry.field_name, entry.old_value, entry.new_value) == ("location", None, "Gate 3")

    def test_history_accumulates(self, delivery_service, make_active_po, log_load, buyer_admin, deterministic_clock):
        po = make_active_po()
        load = log_load(po.id)
        delivery_service.edit_load(load.id, LoadChanges(total_bale_count=25), buyer_admin)
        deterministic_clock.tick()
        delivery_service.edit_load(load.id, LoadChanges(total_bale_count=26), buyer_admin)

        history = delivery_service.get_load_history(load.id, buyer_admin)
        assert [h.new_value for h in history] == ["25", "26"]
        assert history[1].old_value == "25"

    def test_edit_audited(self, session, delivery_service, make_active_po, log_load, buyer_admin):
        po = make_active_po()
        load = log_load(po.id)
        delivery_service.edit_load(load.id, LoadChanges(wet_bales_count=3), buyer_admin)
        record = AuditorService(session).get_trail("Load", load.id)[-1]
        assert record.action == AuditAction.EDIT_LOAD.value
        assert record.old_values["wet_bales_count"] == 0
        assert record.new_values == {"wet_bales_count": 3}

    def test_outsider(self, delivery_service, make_active_po, log_load, outsider_admin):
        po = make_active_po()
        load = log_load(po.id)
        with pytest.raises(NotAParticipantError):
            delivery_service.edit_load(load.id, LoadChanges(wet_bales_count=1), outsider_admin)

    def test_unknown_load(self, delivery_service, buyer_admin):
        with pytest.raises(LoadNotFoundError):
            delivery_service.edit_load(uuid4(), LoadChanges(wet_bales_count=1), buyer_admin)


class TestReads:

    def test_list_deliveries_newest_first(self, delivery_service, make_active_po, log_load, grower_viewer, deterministic_clock):
        po = make_active_po()
        first = log_load(po.id)
        deterministic_clock.tick()
        second = log_load(po.id)

        loads = delivery_service.list_deliveries(po.id, grower_viewer)
        assert [l.id for l in loads] == [second.id, first.id]

    def test_list_loads_across_pos(self, delivery_service, make_active_po, log_load, buyer_viewer, outsider_admin, deterministic_clock):
        first_po = make_active_po()
        second_po = make_active_po()
        log_load(first_po.id)
        deterministic_clock.tick()
        log_load(second_po.id)

        loads = delivery_service.list_loads(buyer_viewer)
        assert [l.po_id for l in loads] == [second_po.id, first_po.id]
        assert delivery_service.list_loads(outsider_admin) == ()

    def test_get_load(self, delivery_service, make_active_po, log_load, grower_viewer):
        po = make_active_po()
        load = log_load(po.id)
        fetched = delivery_service.get_load(load.id, grower_viewer)
        assert fetched.load_number == load.load_number
        assert fetched.net_tons == Decimal("18.00")

    def test_outsider_reads(self, delivery_service, make_active_po, log_load, outsider_admin):
        po = make_active_po()
        load = log_load(po.id)
        with pytest.raises(NotAParticipantError):
            delivery_service.list_deliveries(po.id, outsider_admin)
        with pytest.raises(NotAParticipantError):
            delivery_service.get_load(load.id, outsider_admin)
        with pytest.raises(NotAParticipantError):
            delivery_service.get_load_history(load.id, outsider_admin)

    def test_unknown_load(self, delivery_service, buyer_admin):
        with pytest.raises(LoadNotFoundError):
            delivery_service.get_load(uuid4(), buyer_admin)
