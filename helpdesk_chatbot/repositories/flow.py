from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional

from sqlalchemy import delete
from sqlalchemy.engine import Engine
from sqlmodel import Session, select

from ..domain.catalog import ChatbotFlow
from ..domain.models import TriggerType
from ..infrastructure.database.tables import (
    ChatbotFlowDBModel,
    ChatbotInteractionDBModel,
    ChatbotSessionDBModel,
)


# The Interface
class FlowRepository(ABC):
    """
    Defines how the application accesses the flow catalog.
    This allows us change how data is accessed (Memory -> SQL -> API) later
    without changing the ChatbotService code.
    """

    @abstractmethod
    def list_flows(self) -> List[ChatbotFlow]:
        """All flows, active first, newest first."""
        pass

    @abstractmethod
    def list_active_flows(self) -> List[ChatbotFlow]:
        """Active flows in selection priority: primary first, then newest first."""
        pass

    @abstractmethod
    def get_flow(self, flow_id: str) -> Optional[ChatbotFlow]:
        """Retrieves a flow by ID."""
        pass

    @abstractmethod
    def save_flow(self, flow: ChatbotFlow) -> ChatbotFlow:
        """Inserts or updates a flow."""
        pass

    @abstractmethod
    def delete_flow(self, flow_id: str) -> bool:
        """Deletes a flow together with its sessions. Returns True if found and deleted."""
        pass

    @abstractmethod
    def demote_primary(self, except_flow_id: str):
        """Turns every other flow into a non-primary KEYWORD flow."""
        pass


def _active_order(flows: Iterable[ChatbotFlow]) -> List[ChatbotFlow]:
    newest_first = sorted(flows, key=lambda flow: flow.created_at, reverse=True)
    return sorted(newest_first, key=lambda flow: not flow.is_primary)


class InMemoryFlowRepository(FlowRepository):
    """
    Keeps flows in a dictionary for testing/dev purposes.
    """

    def __init__(self, flows: Optional[Iterable[ChatbotFlow]] = None):
        self._store: Dict[str, ChatbotFlow] = {flow.id: flow for flow in flows or []}

    def list_flows(self) -> List[ChatbotFlow]:
        newest_first = sorted(self._store.values(), key=lambda flow: flow.created_at, reverse=True)
        return sorted(newest_first, key=lambda flow: not flow.is_active)

    def list_active_flows(self) -> List[ChatbotFlow]:
        return _active_order(flow for flow in self._store.values() if flow.is_active)

    def get_flow(self, flow_id: str) -> Optional[ChatbotFlow]:
        return self._store.get(flow_id)

    def save_flow(self, flow: ChatbotFlow) -> ChatbotFlow:
        self._store[flow.id] = flow
        return flow

    def delete_flow(self, flow_id: str) -> bool:
        if flow_id in self._store:
            del self._store[flow_id]
            return True
        return False

    def demote_primary(self, except_flow_id: str):
        for flow_id, flow in list(self._store.items()):
            if flow_id != except_flow_id and flow.is_primary:
                self._store[flow_id] = flow.model_copy(
                    update={"is_primary": False, "trigger_type": TriggerType.KEYWORD}
                )


class PostgresFlowRepository(FlowRepository):
    """
    Reads from PostgreSQL 'chatbot_flows' table (JSONB).
    """

    def __init__(self, engine: Optional[Engine] = None):
        if engine is None:
            from ..infrastructure.database.connection import engine as default_engine
            engine = default_engine
        self.engine = engine

    @staticmethod
    def _to_domain(row: ChatbotFlowDBModel) -> ChatbotFlow:
        return ChatbotFlow(
            id=row.id,
            name=row.name,
            description=row.description,
            is_active=row.is_active,
            is_primary=row.is_primary,
            trigger_type=TriggerType(row.trigger_type),
            keywords=list(row.keywords or []),
            entry_node_id=row.entry_node_id,
            definition=row.definition,
            schedule=row.schedule,
            offline_message=row.offline_message,
            transfer_queue_id=row.transfer_queue_id,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )

    def list_flows(self) -> List[ChatbotFlow]:
        with Session(self.engine) as db:
            statement = select(ChatbotFlowDBModel).order_by(
                ChatbotFlowDBModel.is_active.desc(), ChatbotFlowDBModel.created_at.desc()
            )
            return [self._to_domain(row) for row in db.exec(statement).all()]

    def list_active_flows(self) -> List[ChatbotFlow]:
        with Session(self.engine) as db:
            statement = (
                select(ChatbotFlowDBModel)
                .where(ChatbotFlowDBModel.is_active == True)  # noqa: E712
                .order_by(ChatbotFlowDBModel.is_primary.desc(), ChatbotFlowDBModel.created_at.desc())
            )
            return [self._to_domain(row) for row in db.exec(statement).all()]

    def get_flow(self, flow_id: str) -> Optional[ChatbotFlow]:
        with Session(self.engine) as db:
            row = db.get(ChatbotFlowDBModel, flow_id)
            return self._to_domain(row) if row else None

    def save_flow(self, flow: ChatbotFlow) -> ChatbotFlow:
        data = flow.model_dump(mode="json", exclude={"created_at", "updated_at"})
        with Session(self.engine) as db:
            row = db.get(ChatbotFlowDBModel, flow.id)
            if row:
                for key, value in data.items():
                    setattr(row, key, value)
                row.updated_at = datetime.now(timezone.utc)
            else:
                row = ChatbotFlowDBModel(**data, created_at=flow.created_at, updated_at=flow.updated_at)
            db.add(row)
            db.commit()
            db.refresh(row)
            return self._to_domain(row)

    def delete_flow(self, flow_id: str) -> bool:
        with Session(self.engine) as db:
            row = db.get(ChatbotFlowDBModel, flow_id)
            if not row:
                return False

            # Sessions and their interactions go with the flow, in one transaction
            session_ids = select(ChatbotSessionDBModel.id).where(ChatbotSessionDBModel.flow_id == flow_id)
            db.execute(
                delete(ChatbotInteractionDBModel).where(ChatbotInteractionDBModel.session_id.in_(session_ids))
            )
            db.execute(delete(ChatbotSessionDBModel).where(ChatbotSessionDBModel.flow_id == flow_id))
            db.delete(row)
            db.commit()
            return True

    def demote_primary(self, except_flow_id: str):
        with Session(self.engine) as db:
            statement = select(ChatbotFlowDBModel).where(
                ChatbotFlowDBModel.id != except_flow_id,
                ChatbotFlowDBModel.is_primary == True,  # noqa: E712
            )
            for row in db.exec(statement).all():
                row.is_primary = False
                row.trigger_type = TriggerType.KEYWORD.value
                db.add(row)
            db.commit()
