"""Core Layer — domain types, errors, and pure relationship logic.

Invariants:
    - No module in core/ imports from services/, api/, infrastructure/, or db/
    - Status derivation is pure and deterministic; IO only behind Protocols

Design Decisions:
    - Functional core separated from the imperative shell
"""
