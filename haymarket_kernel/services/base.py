"""
BaseService -- abstract base for all kernel services.

Kernel services receive a SQLAlchemy ``Session`` from the caller and use
``session.flush()``, never ``session.commit()``.  The module service that
runs the operation owns commit and rollback, so every step of a
multi-step operation (accept, sign, log delivery, edit load) lands in one
transaction.
"""

from abc import ABC
from typing import Generic, TypeVar

from sqlalchemy.orm import Session

from haymarket_kernel.db.base import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseService(ABC, Generic[ModelType]):
    """
    Abstract base class for all kernel services.

    Non-goals:
        - Does NOT manage transaction lifecycle (commit/rollback).
        - Does NOT provide read methods; those belong in
          ``haymarket_kernel/selectors/``.
    """

    def __init__(self, session: Session):
        self.session = session
