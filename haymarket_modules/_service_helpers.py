"""
Helpers every module service shares: role gates from configuration and
the kernel collaborators built from it.
"""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy.orm import Session

from haymarket_config import MarketplaceConfig, get_active_config
from haymarket_config.bridges import build_number_formats
from haymarket_kernel.domain.access import require_role
from haymarket_kernel.domain.clock import Clock, SystemClock
from haymarket_kernel.domain.identity import Actor
from haymarket_kernel.exceptions import InsufficientRoleError
from haymarket_kernel.logging_config import get_logger
from haymarket_kernel.services.auditor_service import AuditorService
from haymarket_kernel.services.numbering_service import NumberingService
from haymarket_kernel.services.transition_service import TransitionService

logger = get_logger("modules.helpers")


@dataclass
class ServiceKit:
    """Kernel collaborators bound to one session."""

    session: Session
    clock: Clock
    config: MarketplaceConfig
    auditor: AuditorService
    numbering: NumberingService
    transitions: TransitionService

    @classmethod
    def build(
        cls,
        session: Session,
        clock: Clock | None = None,
        config: MarketplaceConfig | None = None,
    ) -> ServiceKit:
        clock = clock or SystemClock()
        config = config or get_active_config()
        return cls(
            session=session,
            clock=clock,
            config=config,
            auditor=AuditorService(session, clock),
            numbering=NumberingService(session, build_number_formats(config)),
            transitions=TransitionService(session),
        )

    def require_role(self, actor: Actor, operation: str) -> None:
        """Raise InsufficientRoleError unless the configured policy allows ``actor``."""
        allowed = self.config.roles_for(operation)
        try:
            require_role(actor, operation, allowed)
        except InsufficientRoleError:
            logger.warning(
                "role_check_failed",
                extra={
                    "operation": operation,
                    "role": actor.role.value,
                    "allowed_roles": list(allowed),
                },
            )
            raise
