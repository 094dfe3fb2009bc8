"""
Flow Definition Parsing.

Turns the persisted (author-facing) flow definition JSON into the frozen
domain model. Only the entry point is checked strictly; individual nodes are
coerced leniently so a single malformed node never prevents a flow from
loading. The interpreter stops on whatever it cannot execute.
"""

from typing import Any, Dict, List, Mapping, Optional, Tuple

from .exceptions import InvalidFlowDefinitionError
from .models import (
    EndNode,
    FlowDefinition,
    InputNode,
    InputValidation,
    MessageNode,
    Node,
    QuestionNode,
    QuestionOption,
    TransferNode,
    UnknownNode,
)

_VALIDATION_TYPES = {"text", "freeform", "number", "email", "phone"}


def ensure_string(value: Any) -> str:
    return value if isinstance(value, str) else ""


def _optional_string(value: Any) -> Optional[str]:
    return value if isinstance(value, str) and value else None


def _optional_int(value: Any) -> Optional[int]:
    # bool is an int subclass, reject it explicitly
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return int(value)
    return None


def _string_tuple(value: Any) -> Tuple[str, ...]:
    if not isinstance(value, list):
        return ()
    return tuple(item for item in value if isinstance(item, str))


def _metadata(value: Any) -> Dict[str, Any]:
    return dict(value) if isinstance(value, Mapping) else {}


def _parse_option(raw: Any, position: int) -> Optional[QuestionOption]:
    if not isinstance(raw, Mapping):
        return None
    value = raw.get("value")
    if value is None or value == "":
        value = f"option_{position}"
    return QuestionOption(
        value=str(value),
        label=_optional_string(raw.get("label")),
        keywords=_string_tuple(raw.get("keywords")),
        next=_optional_string(raw.get("next")),
        store_value=_optional_string(raw.get("storeValue")),
    )


def _parse_validation(raw: Any) -> Optional[InputValidation]:
    if not isinstance(raw, Mapping):
        return None
    validation_type = raw.get("type")
    return InputValidation(
        type=validation_type if validation_type in _VALIDATION_TYPES else None,
        min_length=_optional_int(raw.get("minLength")),
        max_length=_optional_int(raw.get("maxLength")),
        regex=_optional_string(raw.get("regex")),
        message=_optional_string(raw.get("message")),
    )


def parse_node(raw: Mapping[str, Any]) -> Node:
    """Builds the node variant matching raw["type"]."""
    node_id = ensure_string(raw.get("id"))
    node_type = raw.get("type")
    common = {
        "label": _optional_string(raw.get("label")),
        "metadata": _metadata(raw.get("metadata")),
    }

    if node_type == "message":
        return MessageNode(
            id=node_id,
            content=ensure_string(raw.get("content")),
            next=_optional_string(raw.get("next")),
            quick_replies=_string_tuple(raw.get("quickReplies")),
            **common,
        )

    if node_type == "question":
        raw_options = raw.get("options") if isinstance(raw.get("options"), list) else []
        options = [
            _parse_option(option, position)
            for position, option in enumerate(raw_options, start=1)
        ]
        return QuestionNode(
            id=node_id,
            content=ensure_string(raw.get("content")),
            options=tuple(option for option in options if option is not None),
            next=_optional_string(raw.get("next")),
            default_next=_optional_string(raw.get("defaultNext")),
            store_field=_optional_string(raw.get("storeField")),
            allow_free_text=raw.get("allowFreeText") is True,
            retry_message=_optional_string(raw.get("retryMessage")),
            **common,
        )

    if node_type == "input":
        return InputNode(
            id=node_id,
            content=ensure_string(raw.get("content")),
            field=ensure_string(raw.get("field")) or node_id,
            store_field=_optional_string(raw.get("storeField")),
            validation=_parse_validation(raw.get("validation")),
            next=_optional_string(raw.get("next")),
            **common,
        )

    if node_type == "transfer":
        return TransferNode(
            id=node_id,
            message=_optional_string(raw.get("message")),
            queue_id=_optional_string(raw.get("queueId")),
            next=_optional_string(raw.get("next")),
            **common,
        )

    if node_type == "end":
        return EndNode(
            id=node_id,
            content=_optional_string(raw.get("content")),
            **common,
        )

    return UnknownNode(id=node_id, type=str(node_type), raw=dict(raw))


def parse_flow_definition(raw: Any) -> FlowDefinition:
    """
    Validates and converts a stored flow definition.

    Args:
        raw: Decoded JSON of the form {entryNodeId, nodes, version?, metadata?}

    Returns:
        The parsed FlowDefinition.

    Raises:
        InvalidFlowDefinitionError: raw is not an object, entryNodeId is
            missing or empty, or it names no node.
    """
    if not isinstance(raw, Mapping):
        raise InvalidFlowDefinitionError("Invalid chatbot flow definition")

    raw_nodes = raw.get("nodes") if isinstance(raw.get("nodes"), list) else []
    entry_node_id = ensure_string(raw.get("entryNodeId"))

    if not entry_node_id:
        raise InvalidFlowDefinitionError("Chatbot flow definition missing entryNodeId")

    nodes: List[Node] = [
        parse_node(item) for item in raw_nodes if isinstance(item, Mapping)
    ]

    if entry_node_id not in {node.id for node in nodes}:
        raise InvalidFlowDefinitionError(
            f"Chatbot flow definition entry node '{entry_node_id}' not found in nodes"
        )

    metadata = raw.get("metadata")
    return FlowDefinition(
        entry_node_id=entry_node_id,
        nodes=tuple(nodes),
        version=ensure_string(raw.get("version")),
        metadata=dict(metadata) if isinstance(metadata, Mapping) else None,
    )
