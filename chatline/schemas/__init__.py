"""Pydantic schemas for the HTTP API and realtime events."""
