"""
Interpreter - Flow Graph Execution

The FlowInterpreter is the deterministic state machine that walks a chatbot
flow graph for one ticket.
-----------------------------------------------

A conversation does not run in one go. Each call picks up where the session
was suspended, consumes the contact's answer, then keeps advancing through
the graph until it reaches a blocking node (question or input) or the end of
the flow. Between calls the process is free; the suspension point lives only
in the returned SessionState.

The interpreter is a pure function of (definition, state, node, input):
- it never performs I/O and never mutates the state it is given,
- every graph defect (dangling reference, unknown node type, cycle) stops the
  branch quietly and is reported as a FlowDiagnostic instead of an exception.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum, auto
from typing import Dict, List, Optional, Tuple

from ..domain.models import (
    EndNode,
    FlowDefinition,
    InputNode,
    MessageNode,
    QuestionNode,
    TransferNode,
)
from ..state.models import HistoryItem, SessionState, WaitingPointer
from .prompts import format_question_prompt
from .schemas.results import DiagnosticKind, FlowDiagnostic, OutboundMessage, RunResult
from .validation import resolve_option, validate_input

DEFAULT_MAX_STEPS = 50
DEFAULT_OPTION_RETRY_MESSAGE = "Sorry, I didn't understand. Could you choose one of the available options?"
DEFAULT_INPUT_RETRY_MESSAGE = "Sorry, I didn't understand. Could you send it again?"


class ResumeTransition(Enum):
    """What consuming the contact's answer did to the waiting pointer."""

    HOLD = auto()  # Answer rejected, pointer stays on the pending node.
    ADVANCE = auto()  # Answer accepted, pointer moves to the next node.
    RESET = auto()  # Pending node vanished, pointer cleared.


@dataclass
class _RunContext:
    """Mutable working copy of a SessionState, private to one run."""

    timestamp: datetime
    history: List[HistoryItem]
    collected_data: Dict[str, str]
    waiting_for: Optional[WaitingPointer]
    state_completed: Optional[bool]
    bot_messages: List[OutboundMessage] = field(default_factory=list)
    retry_messages: List[OutboundMessage] = field(default_factory=list)
    diagnostics: List[FlowDiagnostic] = field(default_factory=list)
    completed: bool = False
    transferred: bool = False
    transfer_queue_id: Optional[str] = None

    @classmethod
    def from_state(cls, state: SessionState, timestamp: datetime) -> "_RunContext":
        return cls(
            timestamp=timestamp,
            history=list(state.history),
            collected_data=dict(state.collected_data),
            waiting_for=state.waiting_for,
            state_completed=state.completed,
        )

    def record(self, node_id: str, user_input: Optional[str] = None):
        self.history.append(
            HistoryItem(node_id=node_id, input=user_input, occurred_at=self.timestamp.isoformat())
        )

    def emit(self, node_id: str, message: Optional[str]):
        if message:
            self.bot_messages.append(OutboundMessage(node_id=node_id, message=message))

    def report(self, kind: DiagnosticKind, node_id: Optional[str], detail: str = ""):
        self.diagnostics.append(FlowDiagnostic(kind=kind, node_id=node_id, detail=detail))

    def complete(self):
        self.completed = True
        self.state_completed = True

    def to_result(self, next_node_id: Optional[str]) -> RunResult:
        return RunResult(
            state=SessionState(
                history=tuple(self.history),
                collected_data=dict(self.collected_data),
                waiting_for=self.waiting_for,
                completed=self.state_completed,
            ),
            next_node_id=next_node_id,
            completed=self.completed,
            transferred=self.transferred,
            transfer_queue_id=self.transfer_queue_id,
            retry_messages=tuple(self.retry_messages),
            bot_messages=tuple(self.bot_messages),
            diagnostics=tuple(self.diagnostics),
        )


class FlowInterpreter:
    """
    Executes one FlowDefinition. Holds no per-session data, so a single
    instance can serve every ticket using the flow.
    """

    def __init__(self, definition: FlowDefinition, max_steps: int = DEFAULT_MAX_STEPS):
        self.definition = definition
        self.max_steps = max_steps

    def run(
        self,
        state: SessionState,
        current_node_id: Optional[str],
        user_input: Optional[str] = None,
        consume_input: bool = True,
        timestamp: Optional[datetime] = None,
    ) -> RunResult:
        """
        Advances the flow until it must wait for the contact or terminates.

        Args:
            state: Session state before this call. Left untouched.
            current_node_id: Where the session rests (None = entry node).
            user_input: The contact's message, if any.
            consume_input: Treat user_input as the answer to the waiting node.
                False for the first run of a new session.
            timestamp: Time stamped on history entries (defaults to now).

        Returns:
            RunResult with the new state and the messages to send.
        """
        ctx = _RunContext.from_state(state, timestamp or datetime.now(timezone.utc))
        start_node_id = current_node_id or self.definition.entry_node_id

        if consume_input and ctx.waiting_for is not None:
            transition, target, pending_id = self._resume(ctx, user_input or "")

            if transition == ResumeTransition.HOLD:
                return ctx.to_result(next_node_id=pending_id)

            if transition == ResumeTransition.ADVANCE:
                resting = self._traverse(ctx, target)
                return ctx.to_result(next_node_id=resting or pending_id)

        resting = self._traverse(ctx, start_node_id)
        return ctx.to_result(next_node_id=resting or start_node_id)

    # ==========================================================================
    # Resume (consume the answer to the waiting node)
    # ==========================================================================

    def _resume(
        self, ctx: _RunContext, user_input: str
    ) -> Tuple[ResumeTransition, Optional[str], Optional[str]]:
        """Returns (transition, node to continue from, pending node id)."""
        waiting = ctx.waiting_for
        pending = self.definition.get_node(waiting.node_id)

        if isinstance(pending, QuestionNode) and waiting.type == "question":
            match = resolve_option(pending, user_input)
            if match is None:
                ctx.retry_messages.append(
                    OutboundMessage(
                        node_id=pending.id,
                        message=pending.retry_message or DEFAULT_OPTION_RETRY_MESSAGE,
                    )
                )
                return ResumeTransition.HOLD, None, pending.id

            if pending.store_field and match.stored_value is not None:
                ctx.collected_data[pending.store_field] = match.stored_value
            ctx.record(pending.id, match.captured_input)
            ctx.waiting_for = None
            return ResumeTransition.ADVANCE, match.next_node_id, pending.id

        if isinstance(pending, InputNode) and waiting.type == "input":
            outcome = validate_input(pending, user_input)
            if not outcome.ok:
                ctx.retry_messages.append(
                    OutboundMessage(
                        node_id=pending.id,
                        message=outcome.message or DEFAULT_INPUT_RETRY_MESSAGE,
                    )
                )
                return ResumeTransition.HOLD, None, pending.id

            answer = user_input.strip()
            ctx.collected_data[pending.storage_key] = answer
            ctx.record(pending.id, answer)
            ctx.waiting_for = None
            return ResumeTransition.ADVANCE, pending.next, pending.id

        ctx.report(
            DiagnosticKind.PENDING_NODE_MISSING,
            waiting.node_id,
            f"waiting for a {waiting.type} node that is no longer in the flow",
        )
        ctx.waiting_for = None
        return ResumeTransition.RESET, None, None

    # ==========================================================================
    # Traversal
    # ==========================================================================

    def _traverse(self, ctx: _RunContext, node_id: Optional[str]) -> Optional[str]:
        """
        Walks the graph from node_id. Returns the resting node: the node the
        flow now waits on, or the last node visited (None if none was).
        """
        resting: Optional[str] = None
        steps = 0

        while node_id:
            if steps >= self.max_steps:
                ctx.report(
                    DiagnosticKind.STEP_LIMIT_REACHED,
                    node_id,
                    f"stopped after {self.max_steps} steps",
                )
                break

            node = self.definition.get_node(node_id)
            if node is None:
                ctx.report(DiagnosticKind.DANGLING_REFERENCE, node_id, "node not found")
                break

            steps += 1

            if isinstance(node, MessageNode):
                ctx.emit(node.id, node.content)
                ctx.record(node.id)
                resting = node.id
                node_id = node.next

            elif isinstance(node, QuestionNode):
                ctx.emit(node.id, format_question_prompt(node))
                ctx.waiting_for = WaitingPointer(node_id=node.id, type="question")
                return node.id

            elif isinstance(node, InputNode):
                ctx.emit(node.id, node.content)
                ctx.waiting_for = WaitingPointer(node_id=node.id, type="input")
                return node.id

            elif isinstance(node, TransferNode):
                ctx.emit(node.id, node.message)
                ctx.record(node.id)
                ctx.transferred = True
                ctx.transfer_queue_id = node.queue_id
                resting = node.id
                node_id = node.next
                if not node_id:
                    ctx.complete()

            elif isinstance(node, EndNode):
                ctx.emit(node.id, node.content)
                ctx.record(node.id)
                ctx.waiting_for = None
                ctx.complete()
                return node.id

            else:
                ctx.report(
                    DiagnosticKind.UNKNOWN_NODE_TYPE,
                    node.id,
                    f"unsupported node type '{node.type}'",
                )
                break

        return resting


def run(
    definition: FlowDefinition,
    state: SessionState,
    current_node_id: Optional[str],
    user_input: Optional[str] = None,
    consume_input: bool = True,
    timestamp: Optional[datetime] = None,
    max_steps: int = DEFAULT_MAX_STEPS,
) -> RunResult:
    """Functional shortcut for FlowInterpreter(definition, max_steps).run(...)."""
    return FlowInterpreter(definition, max_steps=max_steps).run(
        state=state,
        current_node_id=current_node_id,
        user_input=user_input,
        consume_input=consume_input,
        timestamp=timestamp,
    )
