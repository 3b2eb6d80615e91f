"""Palaver Application Package — message & identity store behind a polling HTTP API.

Invariants:
    - Package root contains no executable code (import side-effects prohibited)
"""
