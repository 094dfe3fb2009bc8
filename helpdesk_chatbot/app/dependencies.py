"""
Dependency Injection Wiring (Composition Root).

This module acts as the central "container" for the application's services.
It is responsible for:
1. Instantiating the core Singleton services (Repositories, Adapters, Selector).
2. Wiring them together (e.g., injecting the Repositories and the helpdesk
   adapters into the ChatbotService).
3. Managing the lifecycle of these objects using @lru_cache to ensure
   they are created only once per application process.

Tests replace any of these through `app.dependency_overrides`.
"""

from functools import lru_cache

from fastapi import Depends

from ..config import settings
from ..repositories.flow import FlowRepository, PostgresFlowRepository
from ..repositories.session import PostgresSessionRepository, SessionRepository
from ..services.chat import ChatbotService
from ..services.flow_selector import FlowSelector, KeywordFlowSelector
from ..services.flows import FlowService
from ..transport.adapters.http import HelpdeskApiClient, HttpMessageTransport, HttpTicketGateway
from ..transport.interface import MessageTransport, TicketGateway


# Helpdesk core API client (Singleton)
@lru_cache()
def get_helpdesk_client() -> HelpdeskApiClient:
    return HelpdeskApiClient(
        base_url=settings.HELPDESK_API_URL,
        token=settings.HELPDESK_API_TOKEN,
        timeout=settings.HTTP_TIMEOUT_SECONDS,
    )


@lru_cache()
def get_message_transport(
    client: HelpdeskApiClient = Depends(get_helpdesk_client),
) -> MessageTransport:
    return HttpMessageTransport(client)


@lru_cache()
def get_ticket_gateway(
    client: HelpdeskApiClient = Depends(get_helpdesk_client),
) -> TicketGateway:
    return HttpTicketGateway(client)


# Flow Repository (Singleton)
@lru_cache()
def get_flow_repository() -> FlowRepository:
    return PostgresFlowRepository()


# Session Repository (Singleton)
# Note: In-memory storage must be a singleton so data persists across requests!
@lru_cache()
def get_session_repository() -> SessionRepository:
    return PostgresSessionRepository()


# The Selector (Singleton)
@lru_cache()
def get_flow_selector() -> FlowSelector:
    return KeywordFlowSelector()


# The Chatbot Service (Singleton Service)
# Must stay a singleton: it owns the per-ticket locks.
@lru_cache()
def get_chatbot_service(
    session_repo: SessionRepository = Depends(get_session_repository),
    flow_repo: FlowRepository = Depends(get_flow_repository),
    transport: MessageTransport = Depends(get_message_transport),
    tickets: TicketGateway = Depends(get_ticket_gateway),
    selector: FlowSelector = Depends(get_flow_selector),
) -> ChatbotService:
    """
    Injects all necessary components into the ChatbotService.
    """
    return ChatbotService(
        session_repository=session_repo,
        flow_repository=flow_repo,
        transport=transport,
        tickets=tickets,
        selector=selector,
        max_steps=settings.CHATBOT_MAX_STEPS,
        default_offline_message=settings.DEFAULT_OFFLINE_MESSAGE,
    )


@lru_cache()
def get_flow_service(
    flow_repo: FlowRepository = Depends(get_flow_repository),
    session_repo: SessionRepository = Depends(get_session_repository),
) -> FlowService:
    return FlowService(flow_repository=flow_repo, session_repository=session_repo)
