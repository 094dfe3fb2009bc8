"""
Database Table Definitions.

This module defines the SQL schema using SQLModel.
We use the 'DBModel' suffix to distinguish these persistence models
from the Pydantic domain models (SessionState, ChatbotFlow).
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from uuid import uuid4

from sqlalchemy import JSON, Column, DateTime
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.types import TypeDecorator
from sqlmodel import Field, SQLModel

# JSONB on Postgres, plain JSON elsewhere (SQLite in tests)
JSONType = JSON().with_variant(JSONB(), "postgresql")


class UTCDateTime(TypeDecorator):
    """
    TIMESTAMP WITH TIME ZONE that only accepts aware datetimes.

    Values are stored in UTC. SQLite keeps no offset, so rows read back are
    tagged as UTC again.
    """

    impl = DateTime
    cache_ok = True

    def __init__(self):
        super().__init__(timezone=True)

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            raise ValueError("Datetime values must have timezone information")
        return value.astimezone(timezone.utc)

    def process_result_value(self, value, dialect):
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value


def _timestamp(nullable: bool = False, index: bool = False) -> Column:
    return Column(UTCDateTime(), nullable=nullable, index=index)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return str(uuid4())


class ChatbotFlowDBModel(SQLModel, table=True):
    """
    Persistence model for chatbot flows.
    Maps 1-to-1 with the 'chatbot_flows' table in Postgres.
    """

    __tablename__ = "chatbot_flows"

    id: str = Field(default_factory=_new_id, primary_key=True)
    name: str
    description: Optional[str] = None
    is_active: bool = Field(default=True, index=True)
    is_primary: bool = Field(default=False)
    trigger_type: str = Field(default="KEYWORD")
    keywords: List[str] = Field(default_factory=list, sa_column=Column(JSONType, nullable=False))
    entry_node_id: str

    # The full author-facing definition ({entryNodeId, nodes, ...}) as JSONB.
    definition: Dict[str, Any] = Field(sa_column=Column(JSONType, nullable=False))
    schedule: Optional[Dict[str, Any]] = Field(default=None, sa_column=Column(JSONType, nullable=True))

    offline_message: Optional[str] = None
    transfer_queue_id: Optional[str] = None
    created_at: datetime = Field(default_factory=_utcnow, sa_column=_timestamp())
    updated_at: datetime = Field(default_factory=_utcnow, sa_column=_timestamp())


class ChatbotSessionDBModel(SQLModel, table=True):
    """
    Persistence model for chatbot sessions.
    Maps 1-to-1 with the 'chatbot_sessions' table in Postgres.
    """

    __tablename__ = "chatbot_sessions"

    id: str = Field(default_factory=_new_id, primary_key=True)
    flow_id: str = Field(foreign_key="chatbot_flows.id", ondelete="CASCADE", index=True)
    ticket_id: str = Field(index=True)
    contact_id: Optional[str] = None
    current_node_id: Optional[str] = None

    # Store the entire SessionState (history, collectedData, waitingFor) as JSONB.
    state: Dict[str, Any] = Field(sa_column=Column(JSONType, nullable=False))

    # Bumped on every save; a save only applies if the version it read is still current.
    version: int = Field(default=0)

    created_at: datetime = Field(default_factory=_utcnow, sa_column=_timestamp())
    updated_at: datetime = Field(default_factory=_utcnow, sa_column=_timestamp())
    completed_at: Optional[datetime] = Field(default=None, sa_column=_timestamp(nullable=True, index=True))
    transferred_at: Optional[datetime] = Field(default=None, sa_column=_timestamp(nullable=True))


class ChatbotInteractionDBModel(SQLModel, table=True):
    """
    Persistence model for the message audit trail of a session.
    Maps 1-to-1 with the 'chatbot_interactions' table in Postgres.
    """

    __tablename__ = "chatbot_interactions"

    id: str = Field(default_factory=_new_id, primary_key=True)
    session_id: str = Field(foreign_key="chatbot_sessions.id", ondelete="CASCADE", index=True)
    sender: str
    node_id: Optional[str] = None
    message: str
    # "metadata" is reserved on declarative models
    meta: Dict[str, Any] = Field(default_factory=dict, sa_column=Column(JSONType, nullable=False))
    created_at: datetime = Field(default_factory=_utcnow, sa_column=_timestamp())
