"""
API Layer - Request/Response Schemas

Pydantic models for API request and response validation. Payloads use the
camelCase keys of the helpdesk front end.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from ..domain.models import TriggerType
from ..schemas.stats import FlowSessionCounts


class _ApiModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class IncomingMessage(_ApiModel):
    ticket_id: str
    message_id: str
    body: str = ""


class IncomingMessageResponse(_ApiModel):
    handled: bool
    session_id: Optional[str] = None
    current_node_id: Optional[str] = None
    completed: bool = False


class FlowRead(_ApiModel):
    id: str
    name: str
    description: Optional[str] = None
    is_active: bool
    is_primary: bool
    trigger_type: TriggerType
    keywords: List[str] = Field(default_factory=list)
    entry_node_id: str
    definition: Optional[Dict[str, Any]] = None
    schedule: Optional[Dict[str, Any]] = None
    offline_message: Optional[str] = None
    transfer_queue_id: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class FlowSummary(FlowRead):
    """List entry: the definition is left out, session counters are added."""
    stats: FlowSessionCounts


class FlowTestRequest(_ApiModel):
    messages: List[Any]


class DeleteResponse(_ApiModel):
    success: bool = True
