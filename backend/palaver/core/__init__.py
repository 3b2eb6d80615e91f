"""Core Layer — pure domain rules, no IO, no async, no locks.

Invariants:
    - No module in core/ imports from services/, api/, or infrastructure/
    - Functions return new values; callers own publication of state
"""
