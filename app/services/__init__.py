"""Services Layer — relationship transitions over the identity store.

Invariants:
    - Services depend on the IdentityStore Protocol, never on SQLAlchemy
"""
