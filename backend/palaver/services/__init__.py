"""Services Layer — stateful store components wrapping the pure core.

Invariants:
    - Each structure has one asyncio.Lock serializing its writers
    - State is published only after the durable write succeeds
"""
