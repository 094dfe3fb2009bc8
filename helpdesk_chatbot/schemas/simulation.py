"""
Schemas - Service Result Models

Pydantic models returned by the service layer and serialized as-is by the API.
"""
from enum import Enum
from typing import List

from pydantic import BaseModel, ConfigDict, Field

from ..state.models import SessionState


class TranscriptSender(str, Enum):
    BOT = "BOT"
    CONTACT = "CONTACT"


class TranscriptEntry(BaseModel):
    """One line of a simulated conversation."""
    model_config = ConfigDict(populate_by_name=True)

    sender: TranscriptSender = Field(..., alias="from")
    message: str


class SimulationResult(BaseModel):
    """
    Outcome of running a flow against scripted contact messages with no side effects.
    """
    transcript: List[TranscriptEntry] = Field(default_factory=list)
    state: SessionState = Field(default_factory=SessionState)
    completed: bool = False
