"""Negotiation module: offer and counter-offer threads on a listing."""

from haymarket_modules.negotiation.models import CounterCommand, OfferCommand, ThreadQuery
from haymarket_modules.negotiation.service import NegotiationService
from haymarket_modules.negotiation.workflows import NEGOTIATION_WORKFLOW

__all__ = [
    "CounterCommand",
    "NEGOTIATION_WORKFLOW",
    "NegotiationService",
    "OfferCommand",
    "ThreadQuery",
]
