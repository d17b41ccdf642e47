"""
Typed Exception Hierarchy for the Haymarket Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Every operation in the core either fully applies or is fully rejected.  When
it is rejected, the caller needs to know *why* without parsing a message:

  1. Every error has a TYPED exception class (catch by type, not message)
  2. Every exception has a CODE attribute (machine-readable, API-safe)
  3. Every exception belongs to one KIND (the category a transport maps to
     a status code)
  4. Exceptions carry structured DATA (not just a message string)

Example - RIGHT way:
    try:
        negotiations.accept(negotiation_id, actor)
    except NegotiationNotPendingError as e:
        api_response(code=e.code, status=e.current_status)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    HaymarketError (base)
    |
    +-- NotFoundError                       kind NOT_FOUND
    |   +-- ListingNotFoundError
    |   +-- NegotiationNotFoundError
    |   +-- PurchaseOrderNotFoundError
    |   +-- LoadNotFoundError
    |
    +-- ForbiddenError                      kind FORBIDDEN
    |   +-- NotAParticipantError
    |   +-- OwnOfferActionError
    |   +-- InsufficientRoleError
    |
    +-- BadRequestError                     kind BAD_REQUEST
    |   +-- ListingUnavailableError
    |   +-- SelfDealingError
    |   +-- FirmPriceError
    |   +-- NegotiationNotPendingError
    |   +-- PurchaseOrderStatusError
    |   +-- TermsLockedError
    |   +-- AlreadySignedError
    |   +-- NonPositiveNetWeightError
    |   +-- NoLinkedListingError
    |   +-- NoChangesError
    |
    +-- InputValidationError                kind VALIDATION_ERROR
    |
    +-- ConflictError                       kind CONFLICT
    |   +-- DuplicateNumberError
    |
    +-- AuditChainBrokenError               kind INTERNAL_ERROR

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Kind            | Code                        | When Raised
----------------|-----------------------------|-----------------------------------------
NOT_FOUND       | LISTING_NOT_FOUND           | Listing id doesn't resolve
                | NEGOTIATION_NOT_FOUND       | Negotiation id doesn't resolve
                | PURCHASE_ORDER_NOT_FOUND    | PO id doesn't resolve
                | LOAD_NOT_FOUND              | Load id doesn't resolve
----------------|-----------------------------|-----------------------------------------
FORBIDDEN       | NOT_A_PARTICIPANT           | Org is neither buyer nor grower
                | OWN_OFFER_ACTION            | Counter/accept/reject your own offer
                | INSUFFICIENT_ROLE           | Role not allowed for the operation
----------------|-----------------------------|-----------------------------------------
BAD_REQUEST     | LISTING_UNAVAILABLE         | Listing status is not available
                | SELF_DEALING                | Offer/accept on own listing
                | FIRM_PRICE                  | Offer or counter on a firm-priced listing
                | NEGOTIATION_NOT_PENDING     | Node already countered/accepted/rejected
                | PURCHASE_ORDER_STATUS       | PO not in the required status
                | TERMS_LOCKED                | Terms edit after a signature
                | ALREADY_SIGNED              | Same side signing twice
                | NON_POSITIVE_NET_WEIGHT     | gross - tare <= 0
                | NO_LINKED_LISTING           | PO has no POStack row
                | NO_CHANGES                  | Patch carries nothing new
----------------|-----------------------------|-----------------------------------------
VALIDATION_ERROR| VALIDATION_ERROR            | Malformed input shape
----------------|-----------------------------|-----------------------------------------
CONFLICT        | DUPLICATE_NUMBER            | Issued number collides with existing row
----------------|-----------------------------|-----------------------------------------
INTERNAL_ERROR  | AUDIT_CHAIN_BROKEN          | Stored audit hash does not recompute

===============================================================================
"""

from typing import Any


class HaymarketError(Exception):
    """
    Base exception for all haymarket kernel errors.

    All subclasses must have ``code`` and ``kind`` class attributes for
    machine-readable error identification.
    """

    code: str = "HAYMARKET_ERROR"
    kind: str = "INTERNAL_ERROR"


# Not found


class NotFoundError(HaymarketError):
    """Base exception for ids that don't resolve."""

    code: str = "NOT_FOUND"
    kind: str = "NOT_FOUND"


class ListingNotFoundError(NotFoundError):
    """Listing with given ID was not found."""

    code: str = "LISTING_NOT_FOUND"

    def __init__(self, listing_id: str):
        self.listing_id = listing_id
        super().__init__(f"Listing not found: {listing_id}")


class NegotiationNotFoundError(NotFoundError):
    """Negotiation with given ID was not found."""

    code: str = "NEGOTIATION_NOT_FOUND"

    def __init__(self, negotiation_id: str):
        self.negotiation_id = negotiation_id
        super().__init__(f"Negotiation not found: {negotiation_id}")


class PurchaseOrderNotFoundError(NotFoundError):
    """Purchase order with given ID was not found."""

    code: str = "PURCHASE_ORDER_NOT_FOUND"

    def __init__(self, po_id: str):
        self.po_id = po_id
        super().__init__(f"Purchase order not found: {po_id}")


class LoadNotFoundError(NotFoundError):
    """Load with given ID was not found."""

    code: str = "LOAD_NOT_FOUND"

    def __init__(self, load_id: str):
        self.load_id = load_id
        super().__init__(f"Load not found: {load_id}")


# Forbidden


class ForbiddenError(HaymarketError):
    """Base exception for authenticated callers acting outside their rights."""

    code: str = "FORBIDDEN"
    kind: str = "FORBIDDEN"


class NotAParticipantError(ForbiddenError):
    """The caller's organization is neither the buyer nor the grower."""

    code: str = "NOT_A_PARTICIPANT"

    def __init__(self, entity_type: str, entity_id: str, organization_id: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.organization_id = organization_id
        super().__init__(
            f"Organization {organization_id} is not a party to "
            f"{entity_type} {entity_id}"
        )


class OwnOfferActionError(ForbiddenError):
    """Only the receiving organization may counter, accept or reject an offer."""

    code: str = "OWN_OFFER_ACTION"

    def __init__(self, negotiation_id: str, action: str):
        self.negotiation_id = negotiation_id
        self.action = action
        super().__init__(f"You cannot {action} your own offer ({negotiation_id})")


class InsufficientRoleError(ForbiddenError):
    """The caller's role is not permitted to run the operation."""

    code: str = "INSUFFICIENT_ROLE"

    def __init__(self, operation: str, role: str, allowed_roles: tuple[str, ...]):
        self.operation = operation
        self.role = role
        self.allowed_roles = allowed_roles
        super().__init__(
            f"{operation} requires one of: {', '.join(allowed_roles)} (caller is {role})"
        )


# Bad request (state preconditions)


class BadRequestError(HaymarketError):
    """Base exception for state or numeric preconditions that do not hold."""

    code: str = "BAD_REQUEST"
    kind: str = "BAD_REQUEST"


class ListingUnavailableError(BadRequestError):
    """Listing is not in ``available`` status."""

    code: str = "LISTING_UNAVAILABLE"

    def __init__(self, listing_id: str, status: str):
        self.listing_id = listing_id
        self.status = status
        super().__init__(f"Listing {listing_id} is not available (status={status})")


class SelfDealingError(BadRequestError):
    """An organization cannot buy from its own listing."""

    code: str = "SELF_DEALING"

    def __init__(self, listing_id: str, organization_id: str):
        self.listing_id = listing_id
        self.organization_id = organization_id
        super().__init__(
            f"Organization {organization_id} cannot make an offer on its own "
            f"listing {listing_id}"
        )


class FirmPriceError(BadRequestError):
    """Firm-priced listings are bought at the listed price, not negotiated."""

    code: str = "FIRM_PRICE"

    def __init__(self, listing_id: str):
        self.listing_id = listing_id
        super().__init__(
            f"Listing {listing_id} is firm-priced; buy it at the listed price"
        )


class NegotiationNotPendingError(BadRequestError):
    """Only pending offers can be countered, accepted or rejected."""

    code: str = "NEGOTIATION_NOT_PENDING"

    def __init__(self, negotiation_id: str, current_status: str, action: str):
        self.negotiation_id = negotiation_id
        self.current_status = current_status
        self.action = action
        super().__init__(
            f"Only pending offers can be {action}; negotiation {negotiation_id} "
            f"is {current_status}"
        )


class PurchaseOrderStatusError(BadRequestError):
    """Purchase order is not in the status the operation requires."""

    code: str = "PURCHASE_ORDER_STATUS"

    def __init__(self, po_id: str, current_status: str, required_status: str, action: str):
        self.po_id = po_id
        self.current_status = current_status
        self.required_status = required_status
        self.action = action
        super().__init__(
            f"Can only {action} {required_status} purchase orders; "
            f"{po_id} is {current_status}"
        )


class TermsLockedError(BadRequestError):
    """Contract terms cannot change once any party has signed."""

    code: str = "TERMS_LOCKED"

    def __init__(self, po_id: str):
        self.po_id = po_id
        super().__init__(f"Cannot change terms on {po_id} after a party has signed")


class AlreadySignedError(BadRequestError):
    """The caller's side has already signed this purchase order."""

    code: str = "ALREADY_SIGNED"

    def __init__(self, po_id: str, side: str):
        self.po_id = po_id
        self.side = side
        super().__init__(f"{side.capitalize()} has already signed {po_id}")


class NonPositiveNetWeightError(BadRequestError):
    """Gross weight must be greater than tare weight."""

    code: str = "NON_POSITIVE_NET_WEIGHT"

    def __init__(self, gross_weight: str, tare_weight: str):
        self.gross_weight = gross_weight
        self.tare_weight = tare_weight
        super().__init__(
            f"Gross weight must be greater than tare weight "
            f"(gross={gross_weight}, tare={tare_weight})"
        )


class NoLinkedListingError(BadRequestError):
    """Purchase order has no POStack row to draw a listing from."""

    code: str = "NO_LINKED_LISTING"

    def __init__(self, po_id: str):
        self.po_id = po_id
        super().__init__(f"Purchase order {po_id} has no linked listing")


class NoChangesError(BadRequestError):
    """A patch carried no field that differs from the current value."""

    code: str = "NO_CHANGES"

    def __init__(self, entity_type: str, entity_id: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(f"No changes provided for {entity_type} {entity_id}")


# Validation


class InputValidationError(HaymarketError):
    """
    Malformed input shape, caught before any state check.

    ``field_errors`` is a list of ``{"field": ..., "message": ...}`` dicts.
    """

    code: str = "VALIDATION_ERROR"
    kind: str = "VALIDATION_ERROR"

    def __init__(self, field_errors: list[dict[str, str]]):
        self.field_errors = field_errors
        fields = ", ".join(e["field"] for e in field_errors)
        super().__init__(f"Invalid input: {fields}")


# Conflict


class ConflictError(HaymarketError):
    """Base exception for duplicate-creation races."""

    code: str = "CONFLICT"
    kind: str = "CONFLICT"


class DuplicateNumberError(ConflictError):
    """An issued human-readable number already exists."""

    code: str = "DUPLICATE_NUMBER"

    def __init__(self, sequence_name: str, value: str):
        self.sequence_name = sequence_name
        self.value = value
        super().__init__(f"{sequence_name} {value} has already been issued")


# Integrity


class AuditChainBrokenError(HaymarketError):
    """Audit hash chain validation failed."""

    code: str = "AUDIT_CHAIN_BROKEN"
    kind: str = "INTERNAL_ERROR"

    def __init__(self, audit_event_id: str, expected_hash: str, actual_hash: str):
        self.audit_event_id = audit_event_id
        self.expected_hash = expected_hash
        self.actual_hash = actual_hash
        super().__init__(
            f"Audit chain broken at {audit_event_id}: "
            f"expected {expected_hash}, found {actual_hash}"
        )


# ---------------------------------------------------------------------------
# Transport mapping
# ---------------------------------------------------------------------------

_HTTP_STATUS_BY_KIND: dict[str, int] = {
    "NOT_FOUND": 404,
    "FORBIDDEN": 403,
    "BAD_REQUEST": 400,
    "VALIDATION_ERROR": 400,
    "CONFLICT": 409,
}


def http_status(exc: HaymarketError) -> int:
    """Status code a thin HTTP layer returns for ``exc``."""
    return _HTTP_STATUS_BY_KIND.get(exc.kind, 500)


def error_payload(exc: HaymarketError) -> dict[str, Any]:
    """
    Wire shape for a rejected operation.

    ``{"error": {"code", "kind", "message"}}`` plus ``details`` for
    validation errors.
    """
    body: dict[str, Any] = {
        "code": exc.code,
        "kind": exc.kind,
        "message": str(exc),
    }
    if isinstance(exc, InputValidationError):
        body["details"] = exc.field_errors
    return {"error": body}
