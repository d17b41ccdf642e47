"""
Access rules shared by every module.

Pure functions over ids and roles.  They raise the typed FORBIDDEN errors
from ``haymarket_kernel.exceptions`` and never touch the database.
"""

from collections.abc import Iterable
from uuid import UUID

from haymarket_kernel.domain.identity import Actor, Role
from haymarket_kernel.exceptions import InsufficientRoleError, NotAParticipantError


def require_role(actor: Actor, operation: str, allowed: Iterable[Role | str]) -> None:
    """Raise InsufficientRoleError unless the actor's role is in ``allowed``."""
    allowed_values = tuple(Role(r).value for r in allowed)
    if actor.role.value not in allowed_values:
        raise InsufficientRoleError(operation, actor.role.value, allowed_values)


def is_participant(actor: Actor, buyer_org_id: UUID, grower_org_id: UUID) -> bool:
    return actor.organization_id in (buyer_org_id, grower_org_id)


def require_participant(
    actor: Actor,
    entity_type: str,
    entity_id: UUID,
    buyer_org_id: UUID,
    grower_org_id: UUID,
) -> None:
    """Raise NotAParticipantError unless the actor's org is buyer or grower."""
    if not is_participant(actor, buyer_org_id, grower_org_id):
        raise NotAParticipantError(
            entity_type, str(entity_id), str(actor.organization_id)
        )


def counterparty(
    offered_by_org_id: UUID, buyer_org_id: UUID, grower_org_id: UUID
) -> UUID:
    """The organization that did not make the offer."""
    return grower_org_id if offered_by_org_id == buyer_org_id else buyer_org_id


def side_of(actor: Actor, buyer_org_id: UUID) -> str:
    """``"buyer"`` or ``"grower"`` for a participant."""
    return "buyer" if actor.organization_id == buyer_org_id else "grower"
