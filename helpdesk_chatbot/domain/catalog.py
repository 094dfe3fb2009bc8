"""
Flow Catalog Records.

A ChatbotFlow is the stored, author-editable wrapper around a flow
definition: how it gets triggered, when it may run and where it hands
conversations off to.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from uuid import uuid4

from pydantic import BaseModel, Field

from .models import TriggerType


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ChatbotFlow(BaseModel):
    """
    Attributes:
        definition: Raw flow definition JSON ({entryNodeId, nodes, ...}).
        schedule: Raw operating-hours JSON, or None for "always open".
        offline_message: Sent when the schedule is closed and it has no fallbackMessage.
        transfer_queue_id: Queue used by transfer nodes that name none.
    """
    id: str = Field(default_factory=lambda: str(uuid4()))
    name: str
    description: Optional[str] = None
    is_active: bool = True
    is_primary: bool = False
    trigger_type: TriggerType = TriggerType.KEYWORD
    keywords: List[str] = Field(default_factory=list)
    entry_node_id: str
    definition: Dict[str, Any] = Field(default_factory=dict)
    schedule: Optional[Dict[str, Any]] = None
    offline_message: Optional[str] = None
    transfer_queue_id: Optional[str] = None
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)
