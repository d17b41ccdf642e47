"""
Tests for the typed exception hierarchy and its wire mapping.

Every domain error has a static code, belongs to one kind, carries its
structured fields, and maps to one HTTP status.
"""

import pytest

from haymarket_kernel.exceptions import (
    AlreadySignedError,
    AuditChainBrokenError,
    BadRequestError,
    ConflictError,
    DuplicateNumberError,
    FirmPriceError,
    ForbiddenError,
    HaymarketError,
    InputValidationError,
    InsufficientRoleError,
    ListingNotFoundError,
    ListingUnavailableError,
    LoadNotFoundError,
    NegotiationNotFoundError,
    NegotiationNotPendingError,
    NoChangesError,
    NoLinkedListingError,
    NonPositiveNetWeightError,
    NotAParticipantError,
    NotFoundError,
    OwnOfferActionError,
    PurchaseOrderNotFoundError,
    PurchaseOrderStatusError,
    SelfDealingError,
    TermsLockedError,
    error_payload,
    http_status,
)


ALL_ERRORS = [
    (ListingNotFoundError("l1"), NotFoundError, "NOT_FOUND", 404),
    (NegotiationNotFoundError("n1"), NotFoundError, "NOT_FOUND", 404),
    (PurchaseOrderNotFoundError("p1"), NotFoundError, "NOT_FOUND", 404),
    (LoadNotFoundError("ld1"), NotFoundError, "NOT_FOUND", 404),
    (NotAParticipantError("PurchaseOrder", "p1", "o1"), ForbiddenError, "FORBIDDEN", 403),
    (OwnOfferActionError("n1", "accept"), ForbiddenError, "FORBIDDEN", 403),
    (InsufficientRoleError("sign", "MANAGER", ("ADMIN",)), ForbiddenError, "FORBIDDEN", 403),
    (ListingUnavailableError("l1", "under_contract"), BadRequestError, "BAD_REQUEST", 400),
    (SelfDealingError("l1", "o1"), BadRequestError, "BAD_REQUEST", 400),
    (FirmPriceError("l1"), BadRequestError, "BAD_REQUEST", 400),
    (NegotiationNotPendingError("n1", "countered", "accept"), BadRequestError, "BAD_REQUEST", 400),
    (PurchaseOrderStatusError("p1", "ACTIVE", "DRAFT", "sign"), BadRequestError, "BAD_REQUEST", 400),
    (TermsLockedError("p1"), BadRequestError, "BAD_REQUEST", 400),
    (AlreadySignedError("p1", "buyer"), BadRequestError, "BAD_REQUEST", 400),
    (NonPositiveNetWeightError("100", "200"), BadRequestError, "BAD_REQUEST", 400),
    (NoLinkedListingError("p1"), BadRequestError, "BAD_REQUEST", 400),
    (NoChangesError("Load", "ld1"), BadRequestError, "BAD_REQUEST", 400),
    (DuplicateNumberError("purchase_order_number", "PO-10001"), ConflictError, "CONFLICT", 409),
]


class TestHierarchy:

    @pytest.mark.parametrize("exc,base,kind,status", ALL_ERRORS)
    def test_kind_and_status(self, exc, base, kind, status):
        assert isinstance(exc, HaymarketError)
        assert isinstance(exc, base)
        assert exc.kind == kind
        assert http_status(exc) == status

    def test_codes_are_unique(self):
        codes = [exc.code for exc, *_ in ALL_ERRORS]
        assert len(codes) == len(set(codes))

    def test_structured_fields(self):
        exc = PurchaseOrderStatusError("p1", "ACTIVE", "DRAFT", "sign")
        assert exc.po_id == "p1"
        assert exc.current_status == "ACTIVE"
        assert exc.required_status == "DRAFT"
        assert exc.action == "sign"

    def test_validation_error_kind(self):
        exc = InputValidationError([{"field": "price_per_ton", "message": "Required"}])
        assert exc.kind == "VALIDATION_ERROR"
        assert http_status(exc) == 400
        assert "price_per_ton" in str(exc)

    def test_audit_chain_error_is_internal(self):
        exc = AuditChainBrokenError("e1", "abc", "def")
        assert exc.kind == "INTERNAL_ERROR"
        assert http_status(exc) == 500


class TestErrorPayload:

    def test_shape(self):
        payload = error_payload(SelfDealingError("l1", "o1"))
        assert set(payload) == {"error"}
        assert payload["error"]["code"] == "SELF_DEALING"
        assert payload["error"]["kind"] == "BAD_REQUEST"
        assert payload["error"]["message"]
        assert "details" not in payload["error"]

    def test_validation_details(self):
        problems = [
            {"field": "gross_weight", "message": "Must be greater than 0"},
            {"field": "total_bale_count", "message": "Required"},
        ]
        payload = error_payload(InputValidationError(problems))
        assert payload["error"]["kind"] == "VALIDATION_ERROR"
        assert payload["error"]["details"] == problems
