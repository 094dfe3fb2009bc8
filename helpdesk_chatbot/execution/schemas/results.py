"""
Run Result Types - Interpreter Output Definitions

Type definitions for what one interpreter run produces. Used by the
interpreter (to report) and by the session services (to dispatch messages,
persist state and perform transfers).
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple

from ...state.models import SessionState


class DiagnosticKind(str, Enum):
    """
    Graph defects the interpreter recovered from without raising.
    The conversation stops at that point, so callers should log these.
    """

    DANGLING_REFERENCE = "DANGLING_REFERENCE"  # A node pointed at an id that does not exist.
    UNKNOWN_NODE_TYPE = "UNKNOWN_NODE_TYPE"  # A node type this engine cannot execute.
    PENDING_NODE_MISSING = "PENDING_NODE_MISSING"  # The waiting pointer names a removed or retyped node.
    STEP_LIMIT_REACHED = "STEP_LIMIT_REACHED"  # Traversal hit max_steps (likely a cycle).


@dataclass(frozen=True)
class FlowDiagnostic:
    kind: DiagnosticKind
    node_id: Optional[str]
    detail: str = ""


@dataclass(frozen=True)
class OutboundMessage:
    """A bot message produced by a node."""

    node_id: str
    message: str


@dataclass(frozen=True)
class RunResult:
    """
    Outcome of one interpreter run.

    Attributes:
        state: The new session state (the input state is never modified).
        next_node_id: Resting node: the waiting target or the last node visited.
        completed: True when an end node or a terminal transfer was reached.
        transferred: True when a transfer node ran during this call.
        transfer_queue_id: Queue named by that transfer node (None = use fallback).
        retry_messages: Sent instead of advancing when an answer was rejected.
        bot_messages: Messages produced by the visited nodes, in order.
        diagnostics: Recovered graph defects.
    """

    state: SessionState
    next_node_id: Optional[str]
    completed: bool
    transferred: bool = False
    transfer_queue_id: Optional[str] = None
    retry_messages: Tuple[OutboundMessage, ...] = ()
    bot_messages: Tuple[OutboundMessage, ...] = ()
    diagnostics: Tuple[FlowDiagnostic, ...] = ()
