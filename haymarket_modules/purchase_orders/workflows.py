"""
Purchase Order Workflows.

State machines for listings under contract and for the purchase order
lifecycle.  Services look transitions up here before writing.
"""

from haymarket_kernel.domain.workflow import Guard, Transition, Workflow
from haymarket_kernel.logging_config import get_logger

logger = get_logger("modules.purchase_orders.workflows")


# -----------------------------------------------------------------------------
# Guards
# -----------------------------------------------------------------------------

NO_SIGNATURES = Guard(
    name="no_signatures",
    description="Neither party has signed; terms are still editable",
)

SIDE_UNSIGNED = Guard(
    name="side_unsigned",
    description="The caller's side has not signed yet",
)

COUNTERPARTY_SIGNED = Guard(
    name="counterparty_signed",
    description="The other side has already signed",
)

LINKED_LISTING = Guard(
    name="linked_listing",
    description="The purchase order is linked to a listing",
)

logger.info(
    "purchase_order_workflow_guards_defined",
    extra={
        "guards": [
            NO_SIGNATURES.name,
            SIDE_UNSIGNED.name,
            COUNTERPARTY_SIGNED.name,
            LINKED_LISTING.name,
        ],
    },
)


# -----------------------------------------------------------------------------
# Purchase order lifecycle
# -----------------------------------------------------------------------------

PURCHASE_ORDER_WORKFLOW = Workflow(
    name="purchase_order",
    description="Contract lifecycle from draft through bilateral signature to completion",
    initial_state="DRAFT",
    states=("DRAFT", "ACTIVE", "COMPLETED"),
    transitions=(
        Transition("DRAFT", "DRAFT", "update_terms", guard=NO_SIGNATURES),
        Transition("DRAFT", "DRAFT", "sign", guard=SIDE_UNSIGNED),
        Transition("DRAFT", "ACTIVE", "countersign", guard=COUNTERPARTY_SIGNED),
        Transition("ACTIVE", "ACTIVE", "log_delivery", guard=LINKED_LISTING),
        Transition("ACTIVE", "COMPLETED", "close"),
    ),
    terminal_states=("COMPLETED",),
)


# -----------------------------------------------------------------------------
# Listing availability
# -----------------------------------------------------------------------------

LISTING_WORKFLOW = Workflow(
    name="listing",
    description="A listing leaves the market once a contract is formed on it",
    initial_state="available",
    states=("available", "under_contract", "depleted"),
    transitions=(
        Transition("available", "under_contract", "form_contract"),
    ),
)

logger.info(
    "purchase_order_workflows_defined",
    extra={
        "workflows": [PURCHASE_ORDER_WORKFLOW.name, LISTING_WORKFLOW.name],
        "transitions": len(PURCHASE_ORDER_WORKFLOW.transitions)
        + len(LISTING_WORKFLOW.transitions),
    },
)
