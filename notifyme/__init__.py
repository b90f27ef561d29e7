"""
notifyme — run a command, then report its output to chat bots and webhooks.
"""

__version__ = "0.1.0"
