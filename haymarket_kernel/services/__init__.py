"""Kernel services: flush-only writers used inside module transactions."""

from haymarket_kernel.services.auditor_service import AuditorService
from haymarket_kernel.services.base import BaseService
from haymarket_kernel.services.numbering_service import (
    NumberFormat,
    NumberFormats,
    NumberingService,
)
from haymarket_kernel.services.sequence_service import SequenceCounter, SequenceService
from haymarket_kernel.services.transition_service import TransitionService

__all__ = [
    "AuditorService",
    "BaseService",
    "NumberFormat",
    "NumberFormats",
    "NumberingService",
    "SequenceCounter",
    "SequenceService",
    "TransitionService",
]
