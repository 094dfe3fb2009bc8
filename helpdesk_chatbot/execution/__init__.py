"""
Execution Layer - Flow Interpretation

Defines the FlowInterpreter (deterministic, side-effect free graph walker)
together with the input validation and schedule checks it relies on.
"""

from helpdesk_chatbot.execution.interpreter import DEFAULT_MAX_STEPS, FlowInterpreter, run
from helpdesk_chatbot.execution.schedule import is_open, parse_schedule
from helpdesk_chatbot.execution.schemas.results import (
    DiagnosticKind,
    FlowDiagnostic,
    OutboundMessage,
    RunResult,
)
from helpdesk_chatbot.execution.validation import (
    OptionMatch,
    ValidationOutcome,
    normalize_text,
    resolve_option,
    validate_input,
)

__all__ = [
    "DEFAULT_MAX_STEPS",
    "DiagnosticKind",
    "FlowDiagnostic",
    "FlowInterpreter",
    "OptionMatch",
    "OutboundMessage",
    "RunResult",
    "ValidationOutcome",
    "is_open",
    "normalize_text",
    "parse_schedule",
    "resolve_option",
    "run",
    "validate_input",
]
