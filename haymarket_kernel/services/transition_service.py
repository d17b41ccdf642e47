"""
TransitionService -- row locks and guarded status writes.

Every state change in the core is a compare-and-set: the row is locked
``FOR UPDATE`` while preconditions are checked, and the status column is
then written with ``UPDATE ... WHERE id = :id AND status = :expected``.
A writer that lost a race on the same row sees rowcount 0 and the caller
raises its "not pending" / "wrong status" error instead of applying the
change twice.
"""

from typing import Any, TypeVar
from uuid import UUID

from sqlalchemy import select, update

from haymarket_kernel.db.base import Base
from haymarket_kernel.logging_config import get_logger
from haymarket_kernel.services.base import BaseService

logger = get_logger("services.transition")

ModelT = TypeVar("ModelT", bound=Base)


class TransitionService(BaseService[Base]):
    """Locked reads and conditional status updates for any status-bearing model."""

    def lock(self, model: type[ModelT], row_id: UUID) -> ModelT | None:
        """Load a row ``FOR UPDATE``, refreshing any copy already in the session."""
        return self.session.execute(
            select(model)
            .where(model.id == row_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def compare_and_set(
        self,
        model: type[Base],
        row_id: UUID,
        expected_status: str,
        values: dict[str, Any],
    ) -> bool:
        """
        Apply ``values`` only if the row still has ``expected_status``.

        Returns True when exactly one row was updated.  The in-session copy
        is refreshed either way.
        """
        result = self.session.execute(
            update(model)
            .where(model.id == row_id)
            .where(model.status == expected_status)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        applied = result.rowcount == 1

        instance = self.session.get(model, row_id)
        if instance is not None:
            self.session.refresh(instance)

        if not applied:
            logger.warning(
                "status_transition_lost",
                extra={
                    "entity_type": model.__name__,
                    "entity_id": str(row_id),
                    "expected_status": expected_status,
                },
            )
        return applied
