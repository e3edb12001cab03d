"""Realtime presence, typing and delivery fan-out over websockets."""
