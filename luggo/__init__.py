"""LUGGO — place reviews, votes and reputation.

Modules:
    - routes: HTTP surface (places, reviews, votes, session, admin)
    - services: place registry, review store, vote ledger, reputation
    - client: async API client and the optimistic client-side cache
"""

__version__ = "0.1.0"
