"""
Schemas - Service Models

Defines Pydantic models exchanged with the service layer (flow drafts,
simulation transcripts, flow statistics).
"""

from helpdesk_chatbot.schemas.flows import FlowDraft
from helpdesk_chatbot.schemas.simulation import SimulationResult, TranscriptEntry, TranscriptSender
from helpdesk_chatbot.schemas.stats import FlowSessionCounts, FlowStats, TimelinePoint

__all__ = [
    "FlowDraft",
    "FlowSessionCounts",
    "FlowStats",
    "SimulationResult",
    "TimelinePoint",
    "TranscriptEntry",
    "TranscriptSender",
]
