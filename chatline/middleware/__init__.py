"""Middleware package for Chatline."""
