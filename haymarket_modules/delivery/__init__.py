"""Delivery module: truck loads against active contracts."""

from haymarket_modules.delivery.models import LoadChanges, LogDeliveryCommand
from haymarket_modules.delivery.service import DeliveryService

__all__ = [
    "DeliveryService",
    "LoadChanges",
    "LogDeliveryCommand",
]
