"""
Chatbot Service - Session Lifecycle Orchestration Layer

This service is the entry point for every inbound WhatsApp message that may
concern the bot. It orchestrates the interaction between the Data Layer
(Repositories), the Logic Layer (Selector/Schedule/Interpreter) and the
helpdesk collaborators (Transport/Tickets). It ensures that sessions are
loaded, advanced, dispatched and saved correctly.
"""

import asyncio
import logging
import weakref
from datetime import datetime, timezone
from typing import Callable, Optional, Sequence

from ..domain.catalog import ChatbotFlow
from ..domain.exceptions import InvalidFlowDefinitionError
from ..domain.models import FlowDefinition
from ..domain.parsing import parse_flow_definition
from ..execution.interpreter import DEFAULT_MAX_STEPS, FlowInterpreter
from ..execution.schedule import is_open, parse_schedule
from ..execution.schemas.results import OutboundMessage, RunResult
from ..repositories.flow import FlowRepository
from ..repositories.session import SessionRepository
from ..schemas.simulation import SimulationResult, TranscriptEntry, TranscriptSender
from ..state.models import (
    ChatbotSession,
    Interaction,
    InteractionSender,
    SessionState,
    WaitingPointer,
)
from ..transport.interface import MessageTransport, Ticket, TicketGateway
from .exceptions import FlowNotFoundError
from .flow_selector import FlowSelector, KeywordFlowSelector

logger = logging.getLogger(__name__)

DEFAULT_OFFLINE_MESSAGE = (
    "We are currently outside our business hours. "
    "We will get back to you as soon as possible."
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ChatbotService:
    def __init__(
        self,
        session_repository: SessionRepository,
        flow_repository: FlowRepository,
        transport: MessageTransport,
        tickets: TicketGateway,
        selector: Optional[FlowSelector] = None,
        max_steps: int = DEFAULT_MAX_STEPS,
        default_offline_message: str = DEFAULT_OFFLINE_MESSAGE,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.session_repo = session_repository
        self.flow_repo = flow_repository
        self.transport = transport
        self.tickets = tickets
        self.selector = selector or KeywordFlowSelector()
        self.max_steps = max_steps
        self.default_offline_message = default_offline_message
        self.clock = clock
        # One lock per ticket currently being processed
        self._ticket_locks: "weakref.WeakValueDictionary[str, asyncio.Lock]" = (
            weakref.WeakValueDictionary()
        )

    async def on_incoming_message(
        self, ticket_id: str, message_id: str, message_text: str
    ) -> Optional[ChatbotSession]:
        """
        Inbound hook, called once per received message after the transport
        stored it.

        Messages of the same ticket are processed one at a time. Failures are
        logged and never reach the caller: the contact only ever sees bot output.

        Returns:
            The session after this message, or None when the bot did not act.
        """
        lock = self._ticket_locks.get(ticket_id)
        if lock is None:
            lock = asyncio.Lock()
            self._ticket_locks[ticket_id] = lock

        async with lock:
            try:
                return await self._process_incoming(ticket_id, message_id, message_text or "")
            except Exception:
                logger.exception(f"Failed to process incoming message {message_id} of ticket {ticket_id}")
                return None

    async def simulate(self, flow_id: str, messages: Sequence[str]) -> SimulationResult:
        """
        Runs a flow against scripted contact messages, in memory, with no
        side effects. Used by the authoring tools to test a flow.

        Raises:
            FlowNotFoundError: Unknown flow_id.
            InvalidFlowDefinitionError: The stored definition does not parse.
        """
        flow = self.flow_repo.get_flow(flow_id)
        if flow is None:
            raise FlowNotFoundError(f"Flow {flow_id} not found")

        definition = parse_flow_definition(flow.definition)
        interpreter = self._interpreter(definition)
        transcript = []

        result = interpreter.run(
            state=SessionState(),
            current_node_id=definition.entry_node_id,
            consume_input=False,
            timestamp=self.clock(),
        )
        transcript.extend(_bot_lines(result.bot_messages))
        current_node_id = result.next_node_id
        state = result.state
        completed = result.completed

        for message in messages:
            if completed:
                break
            transcript.append(TranscriptEntry(sender=TranscriptSender.CONTACT, message=message))

            result = interpreter.run(
                state=state,
                current_node_id=current_node_id,
                user_input=message,
                consume_input=True,
                timestamp=self.clock(),
            )
            transcript.extend(_bot_lines(result.bot_messages))
            transcript.extend(_bot_lines(result.retry_messages))
            current_node_id = result.next_node_id
            state = result.state
            completed = result.completed

        return SimulationResult(
            transcript=transcript,
            state=state,
            completed=bool(state.completed),
        )

    # ==========================================================================
    # Lifecycle
    # ==========================================================================

    async def _process_incoming(
        self, ticket_id: str, message_id: str, message_text: str
    ) -> Optional[ChatbotSession]:
        ticket = await self.tickets.get_ticket(ticket_id)
        if ticket is None:
            logger.warning(f"Ticket {ticket_id} not found, ignoring message {message_id}")
            return None

        # A human agent owns the conversation: stop driving any session
        if ticket.user_id:
            return None

        session = self.session_repo.find_active(ticket.id)
        if session is None:
            return await self._start_session(ticket, message_id, message_text)
        return await self._continue_session(ticket, session, message_id, message_text)

    async def _start_session(
        self, ticket: Ticket, message_id: str, message_text: str
    ) -> Optional[ChatbotSession]:
        """
        Cold start: select a flow, check its schedule, create the session and
        run the entry traversal.
        """
        flows = self.flow_repo.list_active_flows()
        if not flows:
            return None

        flow = self.selector.select(flows, message_text)
        if flow is None:
            logger.info(f"No chatbot flow selected for ticket {ticket.id}")
            return None

        definition = self._load_definition(flow)
        if definition is None:
            return None

        schedule = parse_schedule(flow.schedule)
        if not is_open(schedule, self.clock()):
            logger.info(f"Flow '{flow.name}' is outside operating hours, sending offline message to ticket {ticket.id}")
            offline_message = (
                (schedule.fallback_message if schedule else None)
                or flow.offline_message
                or self.default_offline_message
            )
            await self._dispatch(ticket, None, [OutboundMessage(node_id="", message=offline_message)])
            return None

        logger.info(f"Starting flow '{flow.name}' for ticket {ticket.id}")
        initial_state = SessionState()
        session = self.session_repo.create(
            flow_id=flow.id,
            ticket_id=ticket.id,
            contact_id=ticket.contact_id,
            current_node_id=definition.entry_node_id,
            state=initial_state,
        )
        self._record_contact_message(session, message_id, message_text)

        # The message that opened the ticket is not an answer to anything
        result = self._interpreter(definition).run(
            state=initial_state,
            current_node_id=definition.entry_node_id,
            consume_input=False,
            timestamp=self.clock(),
        )
        return await self._apply_result(ticket, flow, session, result, retry_pointer=None)

    async def _continue_session(
        self, ticket: Ticket, session: ChatbotSession, message_id: str, message_text: str
    ) -> Optional[ChatbotSession]:
        """Warm start: feed the message to the suspended session."""
        flow = self.flow_repo.get_flow(session.flow_id)
        if flow is None:
            logger.warning(f"Session {session.id} references missing flow {session.flow_id}")
            return None

        definition = self._load_definition(flow)
        if definition is None:
            return None

        self._record_contact_message(session, message_id, message_text)

        result = self._interpreter(definition).run(
            state=session.state,
            current_node_id=session.current_node_id,
            user_input=message_text,
            consume_input=True,
            timestamp=self.clock(),
        )
        return await self._apply_result(
            ticket, flow, session, result, retry_pointer=session.state.waiting_for
        )

    async def _apply_result(
        self,
        ticket: Ticket,
        flow: ChatbotFlow,
        session: ChatbotSession,
        result: RunResult,
        retry_pointer: Optional[WaitingPointer],
    ) -> ChatbotSession:
        """Dispatches the run output, persists the new state and performs any transfer."""
        for diagnostic in result.diagnostics:
            logger.warning(
                f"Flow '{flow.name}' ({flow.id}) session {session.id}: "
                f"{diagnostic.kind.value} at node {diagnostic.node_id} {diagnostic.detail}"
            )

        await self._dispatch(ticket, session.id, result.bot_messages)
        await self._dispatch(ticket, session.id, result.retry_messages)

        state = result.state
        next_node_id = result.next_node_id
        if result.retry_messages and retry_pointer is not None:
            # A rejected answer must leave the session on the same question
            state = state.model_copy(update={"waiting_for": retry_pointer})
            next_node_id = retry_pointer.node_id

        updated = session.model_copy(
            update={
                "state": state,
                "current_node_id": next_node_id or session.current_node_id,
                "completed_at": self.clock() if result.completed else session.completed_at,
            }
        )
        saved = self.session_repo.save(updated)

        if result.transferred:
            saved = await self._perform_transfer(ticket, flow, saved, result.transfer_queue_id)

        return saved

    async def _perform_transfer(
        self,
        ticket: Ticket,
        flow: ChatbotFlow,
        session: ChatbotSession,
        queue_from_node: Optional[str],
    ) -> ChatbotSession:
        target_queue_id = queue_from_node or flow.transfer_queue_id or ticket.queue_id
        logger.info(f"Session {session.id} transferring ticket {ticket.id} to queue {target_queue_id}")

        updated_ticket = await self.tickets.transfer(ticket, target_queue_id)
        saved = self.session_repo.save(session.model_copy(update={"transferred_at": self.clock()}))
        await self._notify("ticket:update", updated_ticket.model_dump(mode="json"))
        return saved

    # ==========================================================================
    # Side effects
    # ==========================================================================

    async def _dispatch(
        self,
        ticket: Ticket,
        session_id: Optional[str],
        messages: Sequence[OutboundMessage],
    ):
        """
        Persists, delivers and announces each bot message, then updates the
        last-activity timestamps. A failing collaborator call is logged and
        does not stop the others.
        """
        if not messages:
            return

        for entry in messages:
            content = entry.message.strip()
            if not content:
                continue

            persisted = None
            try:
                persisted = await self.transport.persist_message(ticket, content)
            except Exception:
                logger.exception(f"Failed to persist bot message for ticket {ticket.id}")

            if session_id:
                try:
                    self.session_repo.record_interaction(
                        Interaction(
                            session_id=session_id,
                            sender=InteractionSender.BOT,
                            node_id=entry.node_id or None,
                            message=content,
                        )
                    )
                except Exception:
                    logger.exception(f"Failed to record bot interaction for session {session_id}")

            try:
                await self.transport.deliver(ticket, content)
            except Exception:
                logger.exception(f"Failed to send WhatsApp message for ticket {ticket.id}")

            if persisted:
                await self._notify("message:new", {**persisted, "ticketId": ticket.id})

        try:
            await self.transport.touch_last_activity(ticket, self.clock())
        except Exception:
            logger.exception(f"Failed to update last activity for ticket {ticket.id}")

    async def _notify(self, event: str, payload: dict):
        try:
            await self.transport.notify(event, payload)
        except Exception:
            logger.exception(f"Failed to emit {event} event")

    def _record_contact_message(self, session: ChatbotSession, message_id: str, message_text: str):
        self.session_repo.record_interaction(
            Interaction(
                session_id=session.id,
                sender=InteractionSender.CONTACT,
                message=message_text,
                metadata={"messageId": message_id},
            )
        )

    # ==========================================================================
    # Helpers
    # ==========================================================================

    def _load_definition(self, flow: ChatbotFlow) -> Optional[FlowDefinition]:
        try:
            return parse_flow_definition(flow.definition)
        except InvalidFlowDefinitionError as e:
            logger.error(f"Flow '{flow.name}' ({flow.id}) has an invalid definition: {e}")
            return None

    def _interpreter(self, definition: FlowDefinition) -> FlowInterpreter:
        return FlowInterpreter(definition, max_steps=self.max_steps)


def _bot_lines(messages: Sequence[OutboundMessage]):
    return [TranscriptEntry(sender=TranscriptSender.BOT, message=entry.message) for entry in messages]
