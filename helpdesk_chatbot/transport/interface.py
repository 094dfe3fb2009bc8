"""
Collaborator interfaces.

The engine never talks to WhatsApp or to the ticket store directly. These
abstract classes define the contract for the helpdesk pieces it depends on,
so the HTTP adapters can be swapped for in-memory ones in tests and in flow
simulation.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel


class Ticket(BaseModel):
    """The slice of a helpdesk ticket the chatbot needs."""
    id: str
    contact_id: str
    contact_phone: Optional[str] = None
    whatsapp_id: Optional[str] = None
    queue_id: Optional[str] = None
    # Assigned human agent. While set, the bot stays silent.
    user_id: Optional[str] = None
    status: str = "OPEN"


class MessageTransport(ABC):
    """
    Outbound side of the conversation: storing, delivering and announcing
    bot-authored messages.
    """

    @abstractmethod
    async def persist_message(self, ticket: Ticket, body: str) -> Optional[Dict[str, Any]]:
        """Stores a bot-authored message on the ticket. Returns the stored record."""
        pass

    @abstractmethod
    async def deliver(self, ticket: Ticket, body: str):
        """Sends the message over the channel (WhatsApp)."""
        pass

    @abstractmethod
    async def notify(self, event: str, payload: Dict[str, Any]):
        """Pushes a real-time event (e.g. 'message:new', 'ticket:update') to listeners."""
        pass

    @abstractmethod
    async def touch_last_activity(self, ticket: Ticket, at: datetime):
        """Updates the ticket and contact last-activity timestamps."""
        pass


class TicketGateway(ABC):
    """Read access to tickets plus the one mutation the bot performs: transfer."""

    @abstractmethod
    async def get_ticket(self, ticket_id: str) -> Optional[Ticket]:
        pass

    @abstractmethod
    async def transfer(self, ticket: Ticket, queue_id: Optional[str]) -> Ticket:
        """
        Moves the ticket to queue_id (unchanged if None), clears the assigned
        agent and reopens it if it was closed. Returns the updated ticket.
        """
        pass
