"""
Authentication package for Chatline.

Credential hashing, session tokens and the HTTP auth endpoints.
"""
