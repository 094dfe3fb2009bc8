import json
from datetime import datetime, timezone

import httpx
import pytest

from helpdesk_chatbot.transport.adapters.http import HelpdeskApiClient, HttpMessageTransport, HttpTicketGateway
from helpdesk_chatbot.transport.interface import Ticket


class FakeHelpdesk:
    """Records requests and answers like the helpdesk core API."""

    def __init__(self):
        self.requests = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        if request.method == "GET" and path == "/api/tickets/t1":
            return httpx.Response(
                200,
                json={"id": "t1", "contact": {"id": "c1", "phoneNumber": "5511999999999"}, "queueId": "q1"},
            )
        if request.method == "GET":
            return httpx.Response(404, json={"error": "not found"})
        if path.endswith("/transfer"):
            body = json.loads(request.content)
            return httpx.Response(200, json={"id": "t1", "contactId": "c1", "queueId": body["queueId"]})
        if path == "/api/tickets/t1/messages":
            return httpx.Response(201, json={"id": "m1", "body": json.loads(request.content)["body"]})
        return httpx.Response(204)


@pytest.fixture
def helpdesk():
    return FakeHelpdesk()


@pytest.fixture
async def api(helpdesk):
    async with httpx.AsyncClient(transport=httpx.MockTransport(helpdesk.handler)) as client:
        yield HelpdeskApiClient(base_url="http://helpdesk/api/", token="secret", timeout=5, client=client)


class TestHttpTicketGateway:
    async def test_get_ticket(self, api, helpdesk):
        ticket = await HttpTicketGateway(api).get_ticket("t1")
        assert ticket == Ticket(id="t1", contact_id="c1", contact_phone="5511999999999", queue_id="q1")
        assert helpdesk.requests[0].headers["Authorization"] == "Bearer secret"

    async def test_missing_ticket(self, api):
        assert await HttpTicketGateway(api).get_ticket("nope") is None

    async def test_transfer(self, api, helpdesk):
        ticket = Ticket(id="t1", contact_id="c1", queue_id="q1", user_id="agent", status="CLOSED")
        updated = await HttpTicketGateway(api).transfer(ticket, "q2")
        assert updated.queue_id == "q2"
        assert json.loads(helpdesk.requests[0].content) == {"queueId": "q2", "userId": None, "reopen": True}


class TestHttpMessageTransport:
    async def test_persist_and_deliver(self, api, helpdesk):
        transport = HttpMessageTransport(api)
        ticket = Ticket(id="t1", contact_id="c1", contact_phone="5511999999999", whatsapp_id="w1")

        stored = await transport.persist_message(ticket, "Hello")
        await transport.deliver(ticket, "Hello")
        await transport.notify("message:new", {"id": "m1"})
        await transport.touch_last_activity(ticket, datetime(2024, 5, 15, tzinfo=timezone.utc))

        assert stored == {"id": "m1", "body": "Hello"}
        assert [(r.method, r.url.path) for r in helpdesk.requests] == [
            ("POST", "/api/tickets/t1/messages"),
            ("POST", "/api/tickets/t1/messages/send"),
            ("POST", "/api/events"),
            ("PATCH", "/api/tickets/t1/activity"),
        ]
        assert json.loads(helpdesk.requests[1].content)["to"] == "5511999999999"

    async def test_errors_are_raised(self, helpdesk):
        def failing(request):
            return httpx.Response(500)

        async with httpx.AsyncClient(transport=httpx.MockTransport(failing)) as client:
            api = HelpdeskApiClient(base_url="http://helpdesk/api", token="", client=client)
            with pytest.raises(httpx.HTTPStatusError):
                await HttpMessageTransport(api).deliver(Ticket(id="t1", contact_id="c1"), "Hi")
