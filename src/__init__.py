"""
Level Queue - chat-driven level submission queue.

Participants submit levels from chat, moderators pick the next level
with one of several selection policies, and the queue state survives
restarts through a versioned, upgradeable save file.
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
