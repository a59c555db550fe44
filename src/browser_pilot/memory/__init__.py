"""Conversation memory shared by the agents."""

from .message_manager import ManagedMessage, MessageManager, MessageManagerSettings

__all__ = ["ManagedMessage", "MessageManager", "MessageManagerSettings"]
