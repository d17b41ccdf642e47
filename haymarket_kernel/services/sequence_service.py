"""
SequenceService -- monotonic sequence allocation via locked counter rows.

Responsibility:
    Provides strictly increasing integers for named sequences: listing
    stack ids, purchase order numbers, load numbers and audit event seq.
    A dedicated counter table with row-level locking
    (``SELECT ... FOR UPDATE``) guarantees uniqueness and ordering under
    concurrent access.

Invariants enforced:
    - Monotonicity: the locked counter row is the sole source of truth for
      the next value.  Reading the highest issued value and adding one is
      never used.
    - Transactional: an increment is only visible once the caller's
      transaction commits; a rollback returns the value.

Failure modes:
    - IntegrityError on a concurrent first-use race for the same counter,
      handled by a savepoint rollback and retry.
"""

from sqlalchemy import BigInteger, String, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Mapped, Session, mapped_column

from haymarket_kernel.db.base import Base
from haymarket_kernel.logging_config import get_logger

logger = get_logger("services.sequence")


class SequenceCounter(Base):
    """
    Sequence counter table.

    Each row represents a named sequence with its current value.
    """

    __tablename__ = "sequence_counters"

    name: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        unique=True,
    )

    current_value: Mapped[int] = mapped_column(
        BigInteger,
        nullable=False,
        default=0,
    )


class SequenceService:
    """
    Service for generating transactional sequence numbers.

    Non-goals:
        - Does NOT call ``session.commit()``; caller controls boundaries.
        - Does NOT format values; NumberingService does.

    Usage:
        seq = sequence_service.next_value(SequenceService.AUDIT_EVENT)
    """

    # Well-known sequence names
    AUDIT_EVENT = "audit_event"
    LISTING_STACK = "listing_stack_id"
    PURCHASE_ORDER = "purchase_order_number"
    LOAD = "load_number"

    WELL_KNOWN = (AUDIT_EVENT, LISTING_STACK, PURCHASE_ORDER, LOAD)

    def __init__(self, session: Session):
        self._session = session

    def _locked_counter(self, sequence_name: str) -> SequenceCounter | None:
        return self._session.execute(
            select(SequenceCounter)
            .where(SequenceCounter.name == sequence_name)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def next_value(self, sequence_name: str) -> int:
        """
        Get the next value for a named sequence.

        Locks the counter row (creating it on first use), increments it and
        returns the new value.  Always > 0 and strictly greater than any
        value previously returned for ``sequence_name``.
        """
        counter = self._locked_counter(sequence_name)

        if counter is None:
            # First use.  Another transaction may create the row at the same
            # time, so insert under a savepoint and fall back to the lock.
            savepoint = self._session.begin_nested()
            try:
                counter = SequenceCounter(name=sequence_name, current_value=1)
                self._session.add(counter)
                self._session.flush()
                savepoint.commit()
                logger.debug(
                    "sequence_allocated",
                    extra={"sequence_name": sequence_name, "value": 1},
                )
                return 1
            except IntegrityError:
                logger.debug(
                    "sequence_counter_race_retry",
                    extra={"sequence_name": sequence_name},
                )
                savepoint.rollback()
                counter = self._locked_counter(sequence_name)
                if counter is None:
                    raise

        counter.current_value += 1
        self._session.flush()
        logger.debug(
            "sequence_allocated",
            extra={"sequence_name": sequence_name, "value": counter.current_value},
        )
        return counter.current_value

    def current_value(self, sequence_name: str) -> int | None:
        """Current value of a sequence without incrementing, or None."""
        counter = self._session.execute(
            select(SequenceCounter)
            .where(SequenceCounter.name == sequence_name)
        ).scalar_one_or_none()

        return counter.current_value if counter else None

    def reset(self, sequence_name: str, value: int = 0) -> None:
        """
        Reset a sequence to a specific value.

        Only for tests and data migration.
        """
        counter = self._locked_counter(sequence_name)

        if counter is None:
            counter = SequenceCounter(name=sequence_name, current_value=value)
            self._session.add(counter)
        else:
            counter.current_value = value

        self._session.flush()
        logger.info(
            "sequence_reset",
            extra={"sequence_name": sequence_name, "value": value},
        )

    def initialize_sequences(self) -> None:
        """Create every well-known counter at zero if missing."""
        for name in self.WELL_KNOWN:
            existing = self._session.execute(
                select(SequenceCounter)
                .where(SequenceCounter.name == name)
            ).scalar_one_or_none()

            if existing is None:
                self._session.add(SequenceCounter(name=name, current_value=0))

        self._session.flush()
