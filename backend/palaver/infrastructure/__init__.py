"""Infrastructure Layer — storage medium access and cross-cutting concerns.

Invariants:
    - Infrastructure imports only records and errors from core/, never services/
    - Every write to the storage medium is bounded by retries and a deadline
"""
