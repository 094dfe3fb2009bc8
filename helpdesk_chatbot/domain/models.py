"""
Domain Layer - Static Data Models

This module defines the core domain model representing the static structure
of chatbot flows authored in the helpdesk. These frozen dataclasses are built
from the persisted flow definition JSON and describe Flows, Nodes and Options.
"""

import dataclasses
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Literal, Optional, Tuple, Union

"""
NodeType classifies node behavior:
- message: Sends content and advances unconditionally
- question: Sends a numbered menu and waits for the contact to pick an option
- input: Sends a prompt and waits for a free-text answer that passes validation
- transfer: Hands the conversation to a human queue
- end: Terminal node marking flow completion
"""
NodeType = Literal["message", "question", "input", "transfer", "end"]

ValidationType = Literal["text", "freeform", "number", "email", "phone"]


class TriggerType(str, Enum):
    """
    How a flow gets selected for a new conversation.

    KEYWORD: Started when the first message contains one of the flow keywords.
    DEFAULT: Fallback when no keyword flow matches.
    MANUAL: Never started automatically.
    """
    KEYWORD = "KEYWORD"
    DEFAULT = "DEFAULT"
    MANUAL = "MANUAL"


@dataclass(frozen=True)
class QuestionOption:
    """
    One selectable answer of a question node.

    Attributes:
        value: Canonical value of the option, stored when selected.
        label: Text shown in the numbered menu (falls back to value).
        keywords: Extra words that select this option.
        next: Node to go to when selected. Overrides the node-level next.
        store_value: Value written to the node store_field instead of value.
    """
    value: str
    label: Optional[str] = None
    keywords: Tuple[str, ...] = ()
    next: Optional[str] = None
    store_value: Optional[str] = None


@dataclass(frozen=True)
class InputValidation:
    """
    Rules applied to the answer of an input node.

    The first failing rule wins. `message` replaces every rule-specific
    error text when set.
    """
    type: Optional[ValidationType] = None
    min_length: Optional[int] = None
    max_length: Optional[int] = None
    regex: Optional[str] = None
    message: Optional[str] = None


@dataclass(frozen=True)
class MessageNode:
    id: str
    content: str = ""
    next: Optional[str] = None
    quick_replies: Tuple[str, ...] = ()
    label: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)
    type: Literal["message"] = "message"


@dataclass(frozen=True)
class QuestionNode:
    """
    Multiple-choice step. Suspends the flow until an option is picked.

    Attributes:
        store_field: collected_data key for the selected option value.
        allow_free_text: Accept unmatched answers instead of retrying.
        retry_message: Sent when the answer matches no option.
        default_next: Target for free-text answers (falls back to next).
    """
    id: str
    content: str = ""
    options: Tuple[QuestionOption, ...] = ()
    next: Optional[str] = None
    default_next: Optional[str] = None
    store_field: Optional[str] = None
    allow_free_text: bool = False
    retry_message: Optional[str] = None
    label: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)
    type: Literal["question"] = "question"


@dataclass(frozen=True)
class InputNode:
    """
    Free-text data collection step. Suspends the flow until a valid answer.

    The answer is stored under store_field, or field when store_field is unset.
    """
    id: str
    content: str = ""
    field: str = ""
    store_field: Optional[str] = None
    validation: Optional[InputValidation] = None
    next: Optional[str] = None
    label: Optional[str] = None
    metadata: Dict[str, Any] = dataclasses.field(default_factory=dict)
    type: Literal["input"] = "input"

    @property
    def storage_key(self) -> str:
        return self.store_field or self.field


@dataclass(frozen=True)
class TransferNode:
    """
    Hands the ticket to a human queue.

    A null queue_id means "use the flow transfer queue, else the ticket queue".
    Without next the flow completes here.
    """
    id: str
    message: Optional[str] = None
    queue_id: Optional[str] = None
    next: Optional[str] = None
    label: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)
    type: Literal["transfer"] = "transfer"


@dataclass(frozen=True)
class EndNode:
    id: str
    content: Optional[str] = None
    label: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)
    type: Literal["end"] = "end"


@dataclass(frozen=True)
class UnknownNode:
    """
    Placeholder for a node whose type this engine does not know.
    Kept so the definition still loads; the interpreter stops on it.
    """
    id: str
    type: str
    raw: Dict[str, Any] = field(default_factory=dict)


Node = Union[MessageNode, QuestionNode, InputNode, TransferNode, EndNode, UnknownNode]


@dataclass(frozen=True)
class FlowDefinition:
    """
    Conversation graph of a chatbot flow.

    Immutable and safe to share between tickets. Build it with
    `parse_flow_definition`, which guarantees entry_node_id is one of the nodes.

    Attributes:
        entry_node_id: First node executed for a new session.
        nodes: Nodes in authoring order.
        version: Opaque author version string.
        metadata: Opaque author metadata, carried through unchanged.
    """
    entry_node_id: str
    nodes: Tuple[Node, ...]
    version: str = ""
    metadata: Optional[Dict[str, Any]] = None
    node_index: Dict[str, Node] = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        # First occurrence wins when ids repeat
        index: Dict[str, Node] = {}
        for node in self.nodes:
            index.setdefault(node.id, node)
        object.__setattr__(self, "node_index", index)

    def get_node(self, node_id: Optional[str]) -> Optional[Node]:
        if not node_id:
            return None
        return self.node_index.get(node_id)


@dataclass(frozen=True)
class OperatingWindow:
    """Weekly opening window. days use 0=Sunday; start/end are "HH:MM"."""
    days: Tuple[int, ...]
    start: str
    end: str


@dataclass(frozen=True)
class Schedule:
    timezone: str = "UTC"
    windows: Tuple[OperatingWindow, ...] = ()
    enabled: bool = True
    fallback_message: Optional[str] = None
