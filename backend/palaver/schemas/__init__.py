"""API Schemas — Pydantic models validating the HTTP boundary before the store is reached."""
