"""
Helpdesk Chatbot

Rule-based WhatsApp chatbot for a helpdesk: authored flow graphs are
interpreted one contact message at a time, with the suspension point
persisted between messages and hand-off to human queues.
"""

from helpdesk_chatbot.domain import (
    ChatbotFlow,
    FlowDefinition,
    InvalidFlowDefinitionError,
    Node,
    Schedule,
    TriggerType,
    parse_flow_definition,
)
from helpdesk_chatbot.state import (
    ChatbotSession,
    SessionState,
    WaitingPointer,
)
from helpdesk_chatbot.execution.schemas.results import FlowDiagnostic, RunResult
from helpdesk_chatbot.execution import FlowInterpreter, run

__all__ = [
    # Domain Layer
    "ChatbotFlow",
    "FlowDefinition",
    "InvalidFlowDefinitionError",
    "Node",
    "Schedule",
    "TriggerType",
    "parse_flow_definition",
    # State Layer
    "ChatbotSession",
    "SessionState",
    "WaitingPointer",
    # Schemas
    "FlowDiagnostic",
    "RunResult",
    # Execution Layer
    "FlowInterpreter",
    "run",
]
