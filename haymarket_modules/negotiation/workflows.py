"""
Negotiation Workflow.

Each node in a thread starts pending and ends in exactly one of
countered, accepted or rejected.  Only the recipient of an offer may move
it, which the service checks before looking the transition up here.
"""

from haymarket_kernel.domain.workflow import Guard, Transition, Workflow
from haymarket_kernel.logging_config import get_logger

logger = get_logger("modules.negotiation.workflows")


RECIPIENT_ONLY = Guard(
    name="recipient_only",
    description="Actor's organization is a participant and did not make the offer",
)

NEGOTIATION_WORKFLOW = Workflow(
    name="negotiation",
    description="One offer in a thread, from pending to its single outcome",
    initial_state="pending",
    states=("pending", "countered", "accepted", "rejected"),
    transitions=(
        Transition("pending", "countered", "counter", guard=RECIPIENT_ONLY),
        Transition("pending", "accepted", "accept", guard=RECIPIENT_ONLY),
        Transition("pending", "rejected", "reject", guard=RECIPIENT_ONLY),
    ),
    terminal_states=("countered", "accepted", "rejected"),
)

logger.info(
    "negotiation_workflow_defined",
    extra={
        "workflow": NEGOTIATION_WORKFLOW.name,
        "transitions": len(NEGOTIATION_WORKFLOW.transitions),
    },
)
