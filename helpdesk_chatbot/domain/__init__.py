"""
Domain Layer - Static Data Models

Defines the core domain model representing the static structure of chatbot
flows: Flow definitions, Nodes, Options and operating Schedules.
"""

from helpdesk_chatbot.domain.catalog import ChatbotFlow
from helpdesk_chatbot.domain.exceptions import InvalidFlowDefinitionError
from helpdesk_chatbot.domain.models import (
    EndNode,
    FlowDefinition,
    InputNode,
    InputValidation,
    MessageNode,
    Node,
    NodeType,
    OperatingWindow,
    QuestionNode,
    QuestionOption,
    Schedule,
    TransferNode,
    TriggerType,
    UnknownNode,
)
from helpdesk_chatbot.domain.parsing import parse_flow_definition

__all__ = [
    "ChatbotFlow",
    "EndNode",
    "FlowDefinition",
    "InputNode",
    "InputValidation",
    "InvalidFlowDefinitionError",
    "MessageNode",
    "Node",
    "NodeType",
    "OperatingWindow",
    "QuestionNode",
    "QuestionOption",
    "Schedule",
    "TransferNode",
    "TriggerType",
    "UnknownNode",
    "parse_flow_definition",
]
