"""
Haymarket business modules.

    listings          hay stacks offered for sale
    negotiation       offer / counter-offer threads
    purchase_orders   contracts, signatures, close
    delivery          truck loads against ACTIVE contracts

Each module's ``service.py`` is its public entry point.  Every mutating
method takes an explicit ``Actor`` and owns its transaction: commit on
success, rollback and re-raise on any exception.
"""
