"""
State Layer - Runtime Data Models

Defines the runtime state that tracks a contact's progress through a
chatbot flow, and the persisted session records built around it.
"""

from helpdesk_chatbot.state.models import (
    ChatbotSession,
    HistoryItem,
    Interaction,
    InteractionSender,
    SessionState,
    WaitingPointer,
)

__all__ = [
    "ChatbotSession",
    "HistoryItem",
    "Interaction",
    "InteractionSender",
    "SessionState",
    "WaitingPointer",
]
