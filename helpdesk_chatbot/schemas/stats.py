"""
Schemas - Flow Statistics
"""
from typing import List

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _StatsModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class FlowSessionCounts(_StatsModel):
    total_sessions: int = 0
    active_sessions: int = 0
    completed_sessions: int = 0
    transfer_count: int = 0


class TimelinePoint(_StatsModel):
    date: str
    started: int = 0
    completed: int = 0


class FlowStats(_StatsModel):
    """
    Usage report of one flow.

    completion_rate is a whole percentage; average_duration_seconds covers
    completed sessions only; timeline spans the last 14 days.
    """
    id: str
    name: str
    total_sessions: int = 0
    completed_sessions: int = 0
    transfer_count: int = 0
    average_duration_seconds: int = 0
    completion_rate: int = 0
    timeline: List[TimelinePoint] = Field(default_factory=list)
