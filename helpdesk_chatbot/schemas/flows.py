"""
Schemas - Flow Authoring Requests
"""
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from ..domain.models import TriggerType


class FlowDraft(BaseModel):
    """
    Create/update payload of a chatbot flow.

    Every field is optional so the same model serves partial updates:
    only the fields present in `model_fields_set` are applied.
    """
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    name: Optional[str] = None
    description: Optional[str] = None
    is_active: Optional[bool] = None
    is_primary: Optional[bool] = None
    trigger_type: Optional[TriggerType] = None
    keywords: Optional[List[Any]] = None
    entry_node_id: Optional[str] = None
    definition: Optional[Any] = None
    schedule: Optional[Any] = None
    offline_message: Optional[str] = None
    transfer_queue_id: Optional[str] = None
