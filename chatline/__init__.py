"""
Chatline: chat backend with accounts, message history and realtime presence.
"""

__version__ = "0.1.0"
