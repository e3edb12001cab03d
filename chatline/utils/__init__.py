"""Shared helpers for the chatline server."""
