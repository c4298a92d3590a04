"""Infrastructure Layer — database access, identity store, and logging setup.

Invariants:
    - Depends on core/ types and errors only, never on services/ or api/
    - SQLAlchemy exceptions never escape: they are mapped to DatabaseError
"""
