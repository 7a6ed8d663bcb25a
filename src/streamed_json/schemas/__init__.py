"""Pydantic schemas describing API payloads."""
