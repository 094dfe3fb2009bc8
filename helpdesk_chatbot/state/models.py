"""
State Layer - Runtime Data Models

This module defines the runtime state that tracks a contact's progress
through a chatbot flow. SessionState is an immutable value: the interpreter
returns a new one on every transition and the repositories are the only
place where a change becomes visible.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Literal, Mapping, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class _CamelModel(BaseModel):
    # Persisted JSON keeps the camelCase keys used by the helpdesk front end
    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)


class HistoryItem(_CamelModel):
    node_id: str
    input: Optional[str] = None
    occurred_at: str


class WaitingPointer(_CamelModel):
    """The single suspension point of a session."""
    node_id: str
    type: Literal["question", "input"]


class SessionState(_CamelModel):
    """
    Execution state of one flow instance.

    history is append-only. waiting_for is set while the session is suspended
    on a question or input node; completed is set by end nodes and terminal
    transfers.
    """
    history: Tuple[HistoryItem, ...] = ()
    collected_data: Dict[str, str] = Field(default_factory=dict)
    waiting_for: Optional[WaitingPointer] = None
    completed: Optional[bool] = None

    @classmethod
    def from_raw(cls, raw: Any) -> "SessionState":
        """
        Leniently rebuilds a state from persisted JSON.
        Malformed history entries are dropped and an invalid waiting pointer is ignored.
        """
        if not isinstance(raw, Mapping):
            return cls()

        history = []
        raw_history = raw.get("history")
        for item in raw_history if isinstance(raw_history, list) else []:
            if not isinstance(item, Mapping):
                continue
            node_id = item.get("nodeId")
            if not isinstance(node_id, str) or not node_id:
                continue
            raw_input = item.get("input")
            occurred_at = item.get("occurredAt")
            history.append(
                HistoryItem(
                    node_id=node_id,
                    input=raw_input if isinstance(raw_input, str) and raw_input else None,
                    occurred_at=occurred_at
                    if isinstance(occurred_at, str) and occurred_at
                    else _utcnow().isoformat(),
                )
            )

        collected = raw.get("collectedData")
        collected_data = (
            {str(key): str(value) for key, value in collected.items()}
            if isinstance(collected, Mapping)
            else {}
        )

        waiting_for = None
        waiting = raw.get("waitingFor")
        if isinstance(waiting, Mapping):
            node_id = waiting.get("nodeId")
            waiting_type = waiting.get("type")
            if isinstance(node_id, str) and node_id and waiting_type in ("question", "input"):
                waiting_for = WaitingPointer(node_id=node_id, type=waiting_type)

        completed = raw.get("completed")
        return cls(
            history=tuple(history),
            collected_data=collected_data,
            waiting_for=waiting_for,
            completed=completed if isinstance(completed, bool) else None,
        )

    def to_json(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class ChatbotSession(BaseModel):
    """
    Persisted record binding a flow instance to a ticket.

    current_node_id mirrors waiting_for.node_id while suspended, or the last
    node reached. version increases on every save and guards concurrent writers.
    """
    id: str
    flow_id: str
    ticket_id: str
    contact_id: Optional[str] = None
    current_node_id: Optional[str] = None
    state: SessionState = Field(default_factory=SessionState)
    version: int = 0
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)
    completed_at: Optional[datetime] = None
    transferred_at: Optional[datetime] = None

    @property
    def is_active(self) -> bool:
        return self.completed_at is None


class InteractionSender(str, Enum):
    BOT = "BOT"
    CONTACT = "CONTACT"


class Interaction(BaseModel):
    """Audit record of one message exchanged inside a session."""
    session_id: str
    sender: InteractionSender
    message: str
    node_id: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=_utcnow)
