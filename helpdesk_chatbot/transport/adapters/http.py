"""
HTTP collaborators backed by the helpdesk core API.

The core API owns tickets, messages and the WhatsApp connection. This
adapter only speaks its REST contract:

    GET   /tickets/{id}                -> ticket
    POST  /tickets/{id}/messages       -> store a bot message
    POST  /tickets/{id}/messages/send  -> deliver over WhatsApp
    POST  /tickets/{id}/transfer       -> move queue, clear agent, reopen
    PATCH /tickets/{id}/activity       -> last-activity timestamps
    POST  /events                      -> real-time broadcast
"""

import logging
from datetime import datetime
from typing import Any, Dict, Optional

import httpx

from ...config import settings
from ..interface import MessageTransport, Ticket, TicketGateway

logger = logging.getLogger(__name__)


class HelpdeskApiClient:
    """Thin httpx wrapper shared by the transport and the ticket gateway."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        token: Optional[str] = None,
        timeout: Optional[float] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.base_url = (base_url or settings.HELPDESK_API_URL).rstrip("/")
        self.token = token if token is not None else settings.HELPDESK_API_TOKEN
        self.timeout = timeout or settings.HTTP_TIMEOUT_SECONDS
        self._client = client

    def _get_headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json", "Accept": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    async def request(self, method: str, path: str, **kwargs) -> httpx.Response:
        url = f"{self.base_url}{path}"
        if self._client is not None:
            response = await self._client.request(method, url, headers=self._get_headers(), **kwargs)
        else:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.request(method, url, headers=self._get_headers(), **kwargs)
        return response


def _ticket_from_payload(payload: Dict[str, Any]) -> Ticket:
    contact = payload.get("contact") or {}
    return Ticket(
        id=str(payload["id"]),
        contact_id=str(payload.get("contactId") or contact.get("id") or ""),
        contact_phone=contact.get("phoneNumber"),
        whatsapp_id=payload.get("whatsappId"),
        queue_id=payload.get("queueId"),
        user_id=payload.get("userId"),
        status=payload.get("status") or "OPEN",
    )


class HttpMessageTransport(MessageTransport):
    def __init__(self, api: HelpdeskApiClient):
        self.api = api

    async def persist_message(self, ticket: Ticket, body: str) -> Optional[Dict[str, Any]]:
        response = await self.api.request(
            "POST",
            f"/tickets/{ticket.id}/messages",
            json={"body": body, "type": "TEXT", "channel": "WHATSAPP", "status": "SENT", "fromBot": True},
        )
        response.raise_for_status()
        return response.json()

    async def deliver(self, ticket: Ticket, body: str):
        response = await self.api.request(
            "POST",
            f"/tickets/{ticket.id}/messages/send",
            json={"whatsappId": ticket.whatsapp_id, "to": ticket.contact_phone, "body": body},
        )
        response.raise_for_status()

    async def notify(self, event: str, payload: Dict[str, Any]):
        response = await self.api.request("POST", "/events", json={"event": event, "payload": payload})
        response.raise_for_status()

    async def touch_last_activity(self, ticket: Ticket, at: datetime):
        response = await self.api.request(
            "PATCH",
            f"/tickets/{ticket.id}/activity",
            json={"lastMessageAt": at.isoformat(), "contactId": ticket.contact_id},
        )
        response.raise_for_status()


class HttpTicketGateway(TicketGateway):
    def __init__(self, api: HelpdeskApiClient):
        self.api = api

    async def get_ticket(self, ticket_id: str) -> Optional[Ticket]:
        response = await self.api.request("GET", f"/tickets/{ticket_id}")
        if response.status_code == 404:
            return None
        response.raise_for_status()
        return _ticket_from_payload(response.json())

    async def transfer(self, ticket: Ticket, queue_id: Optional[str]) -> Ticket:
        logger.info(f"Transferring ticket {ticket.id} to queue {queue_id}")
        response = await self.api.request(
            "POST",
            f"/tickets/{ticket.id}/transfer",
            json={"queueId": queue_id, "userId": None, "reopen": ticket.status == "CLOSED"},
        )
        response.raise_for_status()
        return _ticket_from_payload(response.json())
