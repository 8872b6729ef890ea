"""Pydantic schemas for consent, audit, and export payloads."""
