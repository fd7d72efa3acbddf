"""
Database models package.
"""

from .conversation import Conversation, CONVERSATION_STATUSES
from .message import Message, MESSAGE_ROLES
from .property import Agent, Property, PropertyShowing

__all__ = [
    "Conversation",
    "CONVERSATION_STATUSES",
    "Message",
    "MESSAGE_ROLES",
    "Agent",
    "Property",
    "PropertyShowing",
]
