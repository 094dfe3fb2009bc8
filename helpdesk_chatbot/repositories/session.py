import uuid
from abc import ABC, abstractmethod
from collections import defaultdict
from datetime import datetime, timezone
from typing import Dict, List, Optional

from sqlalchemy import update
from sqlalchemy.engine import Engine
from sqlmodel import Session, select

# Domain & Infra Imports
from ..state.models import ChatbotSession, Interaction, InteractionSender, SessionState
from ..infrastructure.database.tables import ChatbotInteractionDBModel, ChatbotSessionDBModel
from .exceptions import StaleSessionError


class SessionRepository(ABC):
    """
    Defines how the application accesses chatbot sessions.
    This allows us change how data is accessed (Memory -> SQL -> API) later
    without changing the ChatbotService code.
    """

    @abstractmethod
    def create(
        self,
        flow_id: str,
        ticket_id: str,
        contact_id: Optional[str],
        current_node_id: Optional[str],
        state: SessionState,
    ) -> ChatbotSession:
        """Creates a new session with a unique ID."""
        pass

    @abstractmethod
    def get(self, session_id: str) -> Optional[ChatbotSession]:
        """Retrieves a session by ID."""
        pass

    @abstractmethod
    def find_active(self, ticket_id: str) -> Optional[ChatbotSession]:
        """Newest session of the ticket that is not completed."""
        pass

    @abstractmethod
    def save(self, session: ChatbotSession) -> ChatbotSession:
        """
        Persists the session if nobody saved it since it was loaded.
        Returns the stored record (with its version bumped).
        Raises StaleSessionError otherwise.
        """
        pass

    @abstractmethod
    def list_for_flow(self, flow_id: str) -> List[ChatbotSession]:
        """All sessions started from a flow."""
        pass

    @abstractmethod
    def record_interaction(self, interaction: Interaction):
        """Appends a message to the session audit trail."""
        pass

    @abstractmethod
    def list_interactions(self, session_id: str) -> List[Interaction]:
        """Audit trail of a session, oldest first."""
        pass


class InMemorySessionRepository(SessionRepository):
    """
    Uses in-memory dictionary for session storage for testing/dev purposes.
    """

    def __init__(self):
        self._store: Dict[str, ChatbotSession] = {}
        self._interactions: Dict[str, List[Interaction]] = defaultdict(list)

    def create(self, flow_id, ticket_id, contact_id, current_node_id, state) -> ChatbotSession:
        session = ChatbotSession(
            id=str(uuid.uuid4()),
            flow_id=flow_id,
            ticket_id=ticket_id,
            contact_id=contact_id,
            current_node_id=current_node_id,
            state=state,
        )
        self._store[session.id] = session
        return session

    def get(self, session_id: str) -> Optional[ChatbotSession]:
        return self._store.get(session_id)

    def find_active(self, ticket_id: str) -> Optional[ChatbotSession]:
        candidates = [
            session
            for session in self._store.values()
            if session.ticket_id == ticket_id and session.completed_at is None
        ]
        if not candidates:
            return None
        return max(candidates, key=lambda session: session.created_at)

    def save(self, session: ChatbotSession) -> ChatbotSession:
        current = self._store.get(session.id)
        if current is None:
            raise ValueError(f"Session {session.id} does not exist.")
        if current.version != session.version:
            raise StaleSessionError(f"Session {session.id} was modified concurrently.")
        stored = session.model_copy(
            update={"version": session.version + 1, "updated_at": datetime.now(timezone.utc)}
        )
        self._store[session.id] = stored
        return stored

    def list_for_flow(self, flow_id: str) -> List[ChatbotSession]:
        return [session for session in self._store.values() if session.flow_id == flow_id]

    def record_interaction(self, interaction: Interaction):
        self._interactions[interaction.session_id].append(interaction)

    def list_interactions(self, session_id: str) -> List[Interaction]:
        return list(self._interactions.get(session_id, []))


class PostgresSessionRepository(SessionRepository):
    """
    PostgreSQL + JSONB storage for session state.
    """

    def __init__(self, engine: Optional[Engine] = None):
        if engine is None:
            from ..infrastructure.database.connection import engine as default_engine
            engine = default_engine
        self.engine = engine

    @staticmethod
    def _to_domain(row: ChatbotSessionDBModel) -> ChatbotSession:
        # Deserialize JSONB back into the Pydantic state model
        return ChatbotSession(
            id=row.id,
            flow_id=row.flow_id,
            ticket_id=row.ticket_id,
            contact_id=row.contact_id,
            current_node_id=row.current_node_id,
            state=SessionState.from_raw(row.state),
            version=row.version,
            created_at=row.created_at,
            updated_at=row.updated_at,
            completed_at=row.completed_at,
            transferred_at=row.transferred_at,
        )

    def create(self, flow_id, ticket_id, contact_id, current_node_id, state) -> ChatbotSession:
        db_model = ChatbotSessionDBModel(
            id=str(uuid.uuid4()),
            flow_id=flow_id,
            ticket_id=ticket_id,
            contact_id=contact_id,
            current_node_id=current_node_id,
            state=state.to_json(),
        )

        with Session(self.engine) as db:
            db.add(db_model)
            db.commit()
            db.refresh(db_model)
            return self._to_domain(db_model)

    def get(self, session_id: str) -> Optional[ChatbotSession]:
        with Session(self.engine) as db:
            row = db.get(ChatbotSessionDBModel, session_id)
            return self._to_domain(row) if row else None

    def find_active(self, ticket_id: str) -> Optional[ChatbotSession]:
        with Session(self.engine) as db:
            statement = (
                select(ChatbotSessionDBModel)
                .where(
                    ChatbotSessionDBModel.ticket_id == ticket_id,
                    ChatbotSessionDBModel.completed_at == None,  # noqa: E711
                )
                .order_by(ChatbotSessionDBModel.created_at.desc())
            )
            row = db.exec(statement).first()
            return self._to_domain(row) if row else None

    def save(self, session: ChatbotSession) -> ChatbotSession:
        now = datetime.now(timezone.utc)
        # Compare-and-swap on version: only one writer per loaded version wins
        statement = (
            update(ChatbotSessionDBModel)
            .where(
                ChatbotSessionDBModel.id == session.id,
                ChatbotSessionDBModel.version == session.version,
            )
            .values(
                current_node_id=session.current_node_id,
                state=session.state.to_json(),
                version=session.version + 1,
                updated_at=now,
                completed_at=session.completed_at,
                transferred_at=session.transferred_at,
            )
        )

        with Session(self.engine) as db:
            result = db.execute(statement)
            if result.rowcount != 1:
                db.rollback()
                if db.get(ChatbotSessionDBModel, session.id) is None:
                    raise ValueError(f"Session {session.id} does not exist in DB.")
                raise StaleSessionError(f"Session {session.id} was modified concurrently.")
            db.commit()

        return session.model_copy(update={"version": session.version + 1, "updated_at": now})

    def list_for_flow(self, flow_id: str) -> List[ChatbotSession]:
        with Session(self.engine) as db:
            statement = select(ChatbotSessionDBModel).where(ChatbotSessionDBModel.flow_id == flow_id)
            return [self._to_domain(row) for row in db.exec(statement).all()]

    def record_interaction(self, interaction: Interaction):
        with Session(self.engine) as db:
            db.add(
                ChatbotInteractionDBModel(
                    session_id=interaction.session_id,
                    sender=interaction.sender.value,
                    node_id=interaction.node_id,
                    message=interaction.message,
                    meta=interaction.metadata,
                    created_at=interaction.created_at,
                )
            )
            db.commit()

    def list_interactions(self, session_id: str) -> List[Interaction]:
        with Session(self.engine) as db:
            statement = (
                select(ChatbotInteractionDBModel)
                .where(ChatbotInteractionDBModel.session_id == session_id)
                .order_by(ChatbotInteractionDBModel.created_at)
            )
            return [
                Interaction(
                    session_id=row.session_id,
                    sender=InteractionSender(row.sender),
                    node_id=row.node_id,
                    message=row.message,
                    metadata=row.meta or {},
                    created_at=row.created_at,
                )
                for row in db.exec(statement).all()
            ]
