"""
In-memory collaborators.

Record every call instead of performing it. Used by flow simulation and
tests, and handy for running the API without a helpdesk core behind it.
"""

from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Tuple
from uuid import uuid4

from ..interface import MessageTransport, Ticket, TicketGateway


class InMemoryMessageTransport(MessageTransport):
    def __init__(self):
        self.persisted: List[Tuple[str, str]] = []
        self.delivered: List[Tuple[str, str]] = []
        self.events: List[Tuple[str, Dict[str, Any]]] = []
        self.last_activity: Dict[str, datetime] = {}

    async def persist_message(self, ticket: Ticket, body: str) -> Optional[Dict[str, Any]]:
        self.persisted.append((ticket.id, body))
        return {"id": str(uuid4()), "ticketId": ticket.id, "body": body}

    async def deliver(self, ticket: Ticket, body: str):
        self.delivered.append((ticket.id, body))

    async def notify(self, event: str, payload: Dict[str, Any]):
        self.events.append((event, payload))

    async def touch_last_activity(self, ticket: Ticket, at: datetime):
        self.last_activity[ticket.id] = at

    def delivered_to(self, ticket_id: str) -> List[str]:
        return [body for owner, body in self.delivered if owner == ticket_id]


class InMemoryTicketGateway(TicketGateway):
    def __init__(self, tickets: Optional[Iterable[Ticket]] = None):
        self._tickets: Dict[str, Ticket] = {ticket.id: ticket for ticket in tickets or []}
        self.transfers: List[Tuple[str, Optional[str]]] = []

    def add(self, ticket: Ticket):
        self._tickets[ticket.id] = ticket

    async def get_ticket(self, ticket_id: str) -> Optional[Ticket]:
        return self._tickets.get(ticket_id)

    async def transfer(self, ticket: Ticket, queue_id: Optional[str]) -> Ticket:
        self.transfers.append((ticket.id, queue_id))
        updated = ticket.model_copy(
            update={
                "queue_id": queue_id if queue_id is not None else ticket.queue_id,
                "user_id": None,
                "status": "OPEN" if ticket.status == "CLOSED" else ticket.status,
            }
        )
        self._tickets[ticket.id] = updated
        return updated
