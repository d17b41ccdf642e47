"""
NumberingService -- human-readable identifiers for listings, POs and loads.

Responsibility:
    Turns SequenceService values into the external formats:

        stack id      "100001", "100002", ...
        PO number     "PO-10001", "PO-10002", ...
        load number   "LD-1001", "LD-1002", ...

    The n-th allocation renders ``prefix + str(first_value + n - 1)``.

Invariants enforced:
    - Every number comes from a locked counter row (SequenceService).
    - The unique constraints on listings.stack_id, purchase_orders.po_number
      and loads.load_number back the counter; a collision surfaces as
      DuplicateNumberError (CONFLICT) when the caller flushes.

Failure modes:
    - DuplicateNumberError from ``guard_unique_flush`` when a number was
      already issued outside the counter (e.g. legacy rows not yet seeded).
"""

import re
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import InstrumentedAttribute, Session

from haymarket_kernel.exceptions import DuplicateNumberError
from haymarket_kernel.logging_config import get_logger
from haymarket_kernel.services.sequence_service import SequenceService

logger = get_logger("services.numbering")


@dataclass(frozen=True)
class NumberFormat:
    """How one sequence renders as an external identifier."""

    sequence_name: str
    prefix: str
    first_value: int

    def render(self, seq: int) -> str:
        return f"{self.prefix}{self.first_value + seq - 1}"

    def parse(self, number: str) -> int | None:
        """Sequence position of ``number``, or None if it is not in this format."""
        match = re.fullmatch(re.escape(self.prefix) + r"(\d+)", number or "")
        if match is None:
            return None
        return int(match.group(1)) - self.first_value + 1


STACK_ID_FORMAT = NumberFormat(SequenceService.LISTING_STACK, "", 100001)
PO_NUMBER_FORMAT = NumberFormat(SequenceService.PURCHASE_ORDER, "PO-", 10001)
LOAD_NUMBER_FORMAT = NumberFormat(SequenceService.LOAD, "LD-", 1001)


@dataclass(frozen=True)
class NumberFormats:
    stack_id: NumberFormat = STACK_ID_FORMAT
    po_number: NumberFormat = PO_NUMBER_FORMAT
    load_number: NumberFormat = LOAD_NUMBER_FORMAT


class NumberingService:
    """
    Allocates formatted identifiers.

    Non-goals:
        - Does NOT call ``session.commit()``.
    """

    def __init__(self, session: Session, formats: NumberFormats | None = None):
        self._session = session
        self._sequences = SequenceService(session)
        self._formats = formats or NumberFormats()

    @property
    def formats(self) -> NumberFormats:
        return self._formats

    def _next(self, fmt: NumberFormat) -> str:
        number = fmt.render(self._sequences.next_value(fmt.sequence_name))
        logger.info(
            "number_issued",
            extra={"sequence_name": fmt.sequence_name, "number": number},
        )
        return number

    def next_stack_id(self) -> str:
        return self._next(self._formats.stack_id)

    def next_po_number(self) -> str:
        return self._next(self._formats.po_number)

    def next_load_number(self) -> str:
        return self._next(self._formats.load_number)

    def seed_from_existing(
        self, fmt: NumberFormat, column: InstrumentedAttribute
    ) -> int:
        """
        Align a counter with numbers already present in ``column``.

        Used once when adopting data issued before the counter existed.
        Never lowers the counter.  Returns the counter value afterwards.
        """
        positions = [
            pos
            for pos in (
                fmt.parse(value)
                for value in self._session.execute(select(column)).scalars()
            )
            if pos is not None
        ]
        highest = max(positions, default=0)
        current = self._sequences.current_value(fmt.sequence_name) or 0
        if highest > current:
            self._sequences.reset(fmt.sequence_name, highest)
            current = highest
        logger.info(
            "sequence_seeded",
            extra={
                "sequence_name": fmt.sequence_name,
                "existing_rows": len(positions),
                "value": current,
            },
        )
        return current


@contextmanager
def guard_unique_flush(
    session: Session, sequence_name: str, number: str
) -> Iterator[None]:
    """
    Flush under a savepoint, mapping a unique-number collision to CONFLICT.
    """
    savepoint = session.begin_nested()
    try:
        yield
        session.flush()
    except IntegrityError:
        savepoint.rollback()
        logger.warning(
            "number_collision",
            extra={"sequence_name": sequence_name, "number": number},
        )
        raise DuplicateNumberError(sequence_name, number)
    savepoint.commit()
