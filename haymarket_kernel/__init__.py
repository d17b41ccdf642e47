"""
Haymarket Kernel

The transactional core of the hay marketplace back office:
- Listings, negotiations, purchase orders and delivery loads as ORM models
- Typed errors with machine-readable codes
- Locked-counter sequence numbering
- Hash-chained audit trail
"""

__version__ = "0.1.0"
