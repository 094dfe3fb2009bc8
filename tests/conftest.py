import os

# Settings are read at import time: set the database before any app import.
os.environ.setdefault("DATABASE_URL", "sqlite://")

from datetime import datetime, timezone  # noqa: E402

import pytest  # noqa: E402
from sqlalchemy import event  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402
from sqlmodel import create_engine  # noqa: E402

from helpdesk_chatbot.domain.catalog import ChatbotFlow  # noqa: E402
from helpdesk_chatbot.domain.models import TriggerType  # noqa: E402
from helpdesk_chatbot.repositories.flow import InMemoryFlowRepository  # noqa: E402
from helpdesk_chatbot.repositories.session import InMemorySessionRepository  # noqa: E402
from helpdesk_chatbot.services.chat import ChatbotService  # noqa: E402
from helpdesk_chatbot.transport.adapters.memory import (  # noqa: E402
    InMemoryMessageTransport,
    InMemoryTicketGateway,
)
from helpdesk_chatbot.transport.interface import Ticket  # noqa: E402

# Wednesday, inside usual business hours
FIXED_NOW = datetime(2024, 5, 15, 14, 30, tzinfo=timezone.utc)


@pytest.fixture
def pick_definition():
    """Hi -> pick 1 or 2 -> Bye1 / Bye2."""
    return {
        "entryNodeId": "start",
        "nodes": [
            {"id": "start", "type": "message", "content": "Hi", "next": "q"},
            {
                "id": "q",
                "type": "question",
                "content": "Pick 1 or 2",
                "storeField": "choice",
                "options": [
                    {"value": "1", "next": "end1"},
                    {"value": "2", "next": "end2"},
                ],
            },
            {"id": "end1", "type": "end", "content": "Bye1"},
            {"id": "end2", "type": "end", "content": "Bye2"},
        ],
    }


@pytest.fixture
def support_definition():
    """Menu, validated input and transfer."""
    return {
        "entryNodeId": "welcome",
        "nodes": [
            {"id": "welcome", "type": "message", "content": "Welcome!", "next": "menu"},
            {
                "id": "menu",
                "type": "question",
                "content": "Do you need help?",
                "storeField": "wants_help",
                "options": [
                    {"value": "Sim", "label": "Sim", "next": "ask_email"},
                    {"value": "Nao", "label": "Não", "next": "bye"},
                ],
            },
            {
                "id": "ask_email",
                "type": "input",
                "content": "What is your email?",
                "field": "email",
                "validation": {"type": "email"},
                "next": "handoff",
            },
            {"id": "handoff", "type": "transfer", "message": "Transferring you now."},
            {"id": "bye", "type": "end", "content": "Goodbye!"},
        ],
    }


def make_flow(definition, **overrides) -> ChatbotFlow:
    data = {
        "name": "Support",
        "trigger_type": TriggerType.DEFAULT,
        "entry_node_id": definition["entryNodeId"],
        "definition": definition,
    }
    data.update(overrides)
    return ChatbotFlow(**data)


@pytest.fixture
def ticket():
    return Ticket(id="ticket-1", contact_id="contact-1", queue_id="queue-ticket")


@pytest.fixture
def transport():
    return InMemoryMessageTransport()


@pytest.fixture
def tickets(ticket):
    return InMemoryTicketGateway([ticket])


@pytest.fixture
def session_repository():
    return InMemorySessionRepository()


@pytest.fixture
def flow_repository():
    return InMemoryFlowRepository()


@pytest.fixture
def chatbot_service(session_repository, flow_repository, transport, tickets):
    return ChatbotService(
        session_repository=session_repository,
        flow_repository=flow_repository,
        transport=transport,
        tickets=tickets,
        clock=lambda: FIXED_NOW,
    )


@pytest.fixture
def sqlite_engine():
    """Fresh in-memory SQLite database with the chatbot tables and foreign keys enforced."""
    from helpdesk_chatbot.infrastructure.database.connection import init_db

    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    @event.listens_for(engine, "connect")
    def _enable_foreign_keys(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def flow_factory():
    return make_flow
