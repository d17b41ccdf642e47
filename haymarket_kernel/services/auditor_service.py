"""
AuditorService -- tamper-evident audit trail and hash chain maintenance.

Responsibility:
    Creates append-only, hash-chained audit events for every contract
    state change: listing creation, negotiation acceptance, term edits,
    signatures, closes, center tags, deliveries and load edits.  Provides
    chain validation and per-entity trails.

Invariants enforced:
    - seq comes from SequenceService (locked counter), never max+1.
    - hash = H(entity_type | entity_id | action | payload_hash | prev_hash).
    - Audit events are never updated or deleted.

Signatures:
    SIGN_PO and ACCEPT_LISTING_AND_SIGN events are the only record of the
    typed name and signature image.  Their ``new_values`` always carry
    ``side`` ("buyer" or "grower"), ``typed_name`` and ``signature_image``.

Failure modes:
    - AuditChainBrokenError from ``validate_chain`` on a hash mismatch or
      a broken prev_hash link.
"""

from typing import Any
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from haymarket_kernel.domain.clock import Clock, SystemClock
from haymarket_kernel.domain.dtos import AuditRecord
from haymarket_kernel.exceptions import AuditChainBrokenError
from haymarket_kernel.logging_config import get_logger
from haymarket_kernel.models.audit_event import AuditAction, AuditEvent
from haymarket_kernel.services.sequence_service import SequenceService
from haymarket_kernel.utils.hashing import hash_audit_event, hash_payload, to_json_safe

logger = get_logger("services.auditor")


class AuditorService:
    """
    Service for creating and validating tamper-evident audit events.

    Non-goals:
        - Does NOT call ``session.commit()``; caller controls boundaries.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
    ):
        self._session = session
        self._clock = clock or SystemClock()
        self._sequence_service = SequenceService(session)

    def _get_last_hash(self) -> str | None:
        """Get the hash of the most recent audit event."""
        last_event = self._session.execute(
            select(AuditEvent)
            .order_by(AuditEvent.seq.desc())
            .limit(1)
        ).scalar_one_or_none()

        return last_event.hash if last_event else None

    def _create_audit_event(
        self,
        entity_type: str,
        entity_id: UUID,
        action: AuditAction,
        actor_id: UUID,
        old_values: dict[str, Any] | None = None,
        new_values: dict[str, Any] | None = None,
    ) -> AuditEvent:
        """
        Create a new audit event with hash chain linkage.

        Public callers use the domain-specific ``record_*`` methods.
        """
        seq = self._sequence_service.next_value(SequenceService.AUDIT_EVENT)
        prev_hash = self._get_last_hash()

        old_json = to_json_safe(old_values)
        new_json = to_json_safe(new_values)
        computed_payload_hash = hash_payload({"old": old_json, "new": new_json})

        event_hash = hash_audit_event(
            entity_type=entity_type,
            entity_id=str(entity_id),
            action=action.value,
            payload_hash=computed_payload_hash,
            prev_hash=prev_hash,
        )

        audit_event = AuditEvent(
            seq=seq,
            entity_type=entity_type,
            entity_id=entity_id,
            action=action.value,
            actor_id=actor_id,
            occurred_at=self._clock.now(),
            old_values=old_json,
            new_values=new_json,
            payload_hash=computed_payload_hash,
            prev_hash=prev_hash,
            hash=event_hash,
        )

        self._session.add(audit_event)
        self._session.flush()

        logger.info(
            "audit_event_created",
            extra={
                "entity_type": entity_type,
                "entity_id": str(entity_id),
                "action": action.value,
                "seq": seq,
            },
        )

        return audit_event

    # Domain-specific recording methods

    def record_listing_created(
        self, listing_id: UUID, stack_id: str, actor_id: UUID
    ) -> AuditEvent:
        return self._create_audit_event(
            entity_type="Listing",
            entity_id=listing_id,
            action=AuditAction.CREATE_LISTING,
            actor_id=actor_id,
            new_values={"stack_id": stack_id, "status": "available"},
        )

    def record_negotiation_accepted(
        self,
        negotiation_id: UUID,
        po_id: UUID,
        po_number: str,
        contracted_tons: Any,
        price_per_ton: Any,
        actor_id: UUID,
    ) -> AuditEvent:
        return self._create_audit_event(
            entity_type="Negotiation",
            entity_id=negotiation_id,
            action=AuditAction.ACCEPT_NEGOTIATION,
            actor_id=actor_id,
            old_values={"status": "pending"},
            new_values={
                "status": "accepted",
                "po_id": po_id,
                "po_number": po_number,
                "contracted_tons": contracted_tons,
                "price_per_ton": price_per_ton,
            },
        )

    def record_listing_accepted_and_signed(
        self,
        po_id: UUID,
        listing_id: UUID,
        typed_name: str,
        signature_image: str | None,
        actor_id: UUID,
    ) -> AuditEvent:
        """Buyer accepted a listing at its price and signed in one step."""
        return self._create_audit_event(
            entity_type="PurchaseOrder",
            entity_id=po_id,
            action=AuditAction.ACCEPT_LISTING_AND_SIGN,
            actor_id=actor_id,
            new_values={
                "typed_name": typed_name,
                "signature_image": signature_image,
                "side": "buyer",
                "listing_id": listing_id,
            },
        )

    def record_terms_updated(
        self,
        po_id: UUID,
        old_values: dict[str, Any],
        new_values: dict[str, Any],
        actor_id: UUID,
    ) -> AuditEvent:
        return self._create_audit_event(
            entity_type="PurchaseOrder",
            entity_id=po_id,
            action=AuditAction.UPDATE_PO_TERMS,
            actor_id=actor_id,
            old_values=old_values,
            new_values=new_values,
        )

    def record_po_signed(
        self,
        po_id: UUID,
        side: str,
        typed_name: str,
        signature_image: str | None,
        both_signed: bool,
        actor_id: UUID,
    ) -> AuditEvent:
        return self._create_audit_event(
            entity_type="PurchaseOrder",
            entity_id=po_id,
            action=AuditAction.SIGN_PO,
            actor_id=actor_id,
            new_values={
                "typed_name": typed_name,
                "signature_image": signature_image,
                "side": side,
                "both_signed": both_signed,
            },
        )

    def record_contract_closed(
        self,
        po_id: UUID,
        old_status: str,
        old_delivered_tons: Any,
        contracted_tons: Any,
        actor_id: UUID,
    ) -> AuditEvent:
        return self._create_audit_event(
            entity_type="PurchaseOrder",
            entity_id=po_id,
            action=AuditAction.CLOSE_CONTRACT,
            actor_id=actor_id,
            old_values={"status": old_status, "delivered_tons": old_delivered_tons},
            new_values={"status": "COMPLETED", "delivered_tons": contracted_tons},
        )

    def record_center_set(
        self,
        po_id: UUID,
        old_values: dict[str, Any],
        new_values: dict[str, Any],
        actor_id: UUID,
    ) -> AuditEvent:
        return self._create_audit_event(
            entity_type="PurchaseOrder",
            entity_id=po_id,
            action=AuditAction.SET_PO_CENTER,
            actor_id=actor_id,
            old_values=old_values,
            new_values=new_values,
        )

    def record_delivery_logged(
        self, load_id: UUID, new_values: dict[str, Any], actor_id: UUID
    ) -> AuditEvent:
        return self._create_audit_event(
            entity_type="Load",
            entity_id=load_id,
            action=AuditAction.LOG_DELIVERY,
            actor_id=actor_id,
            new_values=new_values,
        )

    def record_load_edited(
        self,
        load_id: UUID,
        old_values: dict[str, Any],
        new_values: dict[str, Any],
        actor_id: UUID,
    ) -> AuditEvent:
        return self._create_audit_event(
            entity_type="Load",
            entity_id=load_id,
            action=AuditAction.EDIT_LOAD,
            actor_id=actor_id,
            old_values=old_values,
            new_values=new_values,
        )

    # Queries

    def get_trail(self, entity_type: str, entity_id: UUID) -> tuple[AuditRecord, ...]:
        """All audit events for one entity, oldest first."""
        events = self._session.execute(
            select(AuditEvent)
            .where(AuditEvent.entity_type == entity_type)
            .where(AuditEvent.entity_id == entity_id)
            .order_by(AuditEvent.seq)
        ).scalars().all()

        return tuple(
            AuditRecord(
                seq=e.seq,
                entity_type=e.entity_type,
                entity_id=e.entity_id,
                action=e.action,
                actor_id=e.actor_id,
                occurred_at=e.occurred_at,
                old_values=e.old_values,
                new_values=e.new_values,
            )
            for e in events
        )

    def validate_chain(self) -> bool:
        """
        Validate the entire audit chain.

        Raises:
            AuditChainBrokenError: If any stored hash does not recompute or
                any prev_hash does not match its predecessor.
        """
        events = self._session.execute(
            select(AuditEvent).order_by(AuditEvent.seq)
        ).scalars().all()

        if not events:
            return True

        if events[0].prev_hash is not None:
            logger.critical("audit_chain_broken", extra={"seq": events[0].seq})
            raise AuditChainBrokenError(
                str(events[0].id),
                "None",
                events[0].prev_hash,
            )

        for i, event in enumerate(events):
            expected_payload_hash = hash_payload(
                {"old": event.old_values, "new": event.new_values}
            )
            expected_hash = hash_audit_event(
                entity_type=event.entity_type,
                entity_id=str(event.entity_id),
                action=event.action,
                payload_hash=expected_payload_hash,
                prev_hash=event.prev_hash,
            )

            if event.hash != expected_hash:
                logger.critical("audit_chain_broken", extra={"seq": event.seq})
                raise AuditChainBrokenError(
                    str(event.id),
                    expected_hash,
                    event.hash,
                )

            if i > 0:
                expected_prev = events[i - 1].hash
                if event.prev_hash != expected_prev:
                    logger.critical("audit_chain_broken", extra={"seq": event.seq})
                    raise AuditChainBrokenError(
                        str(event.id),
                        expected_prev,
                        event.prev_hash or "None",
                    )

        logger.info("audit_chain_validated", extra={"event_count": len(events)})
        return True
