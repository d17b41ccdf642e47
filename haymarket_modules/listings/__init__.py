"""Listings module: hay stacks offered for sale."""

from haymarket_modules.listings.models import (
    CreateListingCommand,
    ListingChanges,
    ListingFilters,
)
from haymarket_modules.listings.service import ListingService

__all__ = [
    "CreateListingCommand",
    "ListingChanges",
    "ListingFilters",
    "ListingService",
]
