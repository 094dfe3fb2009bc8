"""
Flow Service - Catalog Administration

Create, edit and report on chatbot flows. Every write re-validates the
definition so the ChatbotService never meets a flow it cannot parse.
"""

import logging
from collections import OrderedDict
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional, Tuple

from ..domain.catalog import ChatbotFlow
from ..domain.models import TriggerType
from ..domain.parsing import parse_flow_definition
from ..repositories.flow import FlowRepository
from ..repositories.session import SessionRepository
from ..schemas.flows import FlowDraft
from ..schemas.stats import FlowSessionCounts, FlowStats, TimelinePoint
from .exceptions import FlowNotFoundError, FlowValidationError

logger = logging.getLogger(__name__)

TIMELINE_DAYS = 14


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    return value.strip() or None


def sanitize_keywords(keywords: Optional[List[Any]]) -> List[str]:
    """Trims keywords and drops blanks and non-strings."""
    return [keyword.strip() for keyword in keywords or [] if isinstance(keyword, str) and keyword.strip()]


def ensure_definition(definition: Any, entry_node_id: str) -> Dict[str, Any]:
    """
    Returns the definition with entryNodeId forced to entry_node_id.

    Raises:
        InvalidFlowDefinitionError: The merged definition does not parse.
    """
    if isinstance(definition, dict):
        merged = {**definition, "entryNodeId": entry_node_id}
    else:
        merged = {"entryNodeId": entry_node_id, "nodes": []}
    parse_flow_definition(merged)
    return merged


def _ensure_schedule(schedule: Any) -> Optional[Dict[str, Any]]:
    return schedule if isinstance(schedule, dict) and schedule else None


class FlowService:
    def __init__(
        self,
        flow_repository: FlowRepository,
        session_repository: SessionRepository,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.flow_repo = flow_repository
        self.session_repo = session_repository
        self.clock = clock

    def list_flows(self) -> List[Tuple[ChatbotFlow, FlowSessionCounts]]:
        """All flows, active first, each paired with its session counters."""
        results = []
        for flow in self.flow_repo.list_flows():
            sessions = self.session_repo.list_for_flow(flow.id)
            counts = FlowSessionCounts(
                total_sessions=len(sessions),
                active_sessions=sum(1 for s in sessions if s.completed_at is None),
                completed_sessions=sum(1 for s in sessions if s.completed_at is not None),
                transfer_count=sum(1 for s in sessions if s.transferred_at is not None),
            )
            results.append((flow, counts))
        return results

    def get_flow(self, flow_id: str) -> ChatbotFlow:
        flow = self.flow_repo.get_flow(flow_id)
        if flow is None:
            raise FlowNotFoundError(f"Flow {flow_id} not found")
        return flow

    def create_flow(self, draft: FlowDraft) -> ChatbotFlow:
        """
        Raises:
            FlowValidationError: Missing name or entry node.
            InvalidFlowDefinitionError: The definition does not parse.
        """
        name = _clean(draft.name)
        entry_node_id = _clean(draft.entry_node_id)
        if not name:
            raise FlowValidationError("Flow name is required")
        if not entry_node_id:
            raise FlowValidationError("Flow entry node is required")

        is_primary = bool(draft.is_primary)
        flow = ChatbotFlow(
            name=name,
            description=_clean(draft.description),
            is_active=True if draft.is_active is None else draft.is_active,
            is_primary=is_primary,
            trigger_type=TriggerType.DEFAULT if is_primary else (draft.trigger_type or TriggerType.KEYWORD),
            keywords=sanitize_keywords(draft.keywords),
            entry_node_id=entry_node_id,
            definition=ensure_definition(draft.definition, entry_node_id),
            schedule=_ensure_schedule(draft.schedule),
            offline_message=_clean(draft.offline_message),
            transfer_queue_id=_clean(draft.transfer_queue_id),
        )

        saved = self.flow_repo.save_flow(flow)
        if saved.is_primary:
            self.flow_repo.demote_primary(except_flow_id=saved.id)
        logger.info(f"Created flow '{saved.name}' ({saved.id})")
        return saved

    def update_flow(self, flow_id: str, draft: FlowDraft) -> ChatbotFlow:
        """Applies the fields present in the draft on top of the stored flow."""
        existing = self.get_flow(flow_id)
        given = draft.model_fields_set

        name = _clean(draft.name) or existing.name
        entry_node_id = _clean(draft.entry_node_id) or existing.entry_node_id
        is_primary = bool(draft.is_primary) if "is_primary" in given else existing.is_primary

        if "trigger_type" in given:
            trigger_type = TriggerType.DEFAULT if is_primary else (draft.trigger_type or TriggerType.KEYWORD)
        else:
            trigger_type = TriggerType.DEFAULT if existing.is_primary else existing.trigger_type

        definition = draft.definition if draft.definition is not None else existing.definition

        update = {
            "name": name,
            "is_primary": is_primary,
            "trigger_type": trigger_type,
            "entry_node_id": entry_node_id,
            "definition": ensure_definition(definition, entry_node_id),
            "updated_at": self.clock(),
        }
        if "description" in given:
            update["description"] = _clean(draft.description)
        if "is_active" in given:
            update["is_active"] = bool(draft.is_active)
        if "keywords" in given:
            update["keywords"] = sanitize_keywords(draft.keywords)
        if "schedule" in given:
            update["schedule"] = _ensure_schedule(draft.schedule)
        if "offline_message" in given:
            update["offline_message"] = _clean(draft.offline_message)
        if "transfer_queue_id" in given:
            update["transfer_queue_id"] = _clean(draft.transfer_queue_id)

        saved = self.flow_repo.save_flow(existing.model_copy(update=update))
        if saved.is_primary:
            self.flow_repo.demote_primary(except_flow_id=saved.id)
        logger.info(f"Updated flow '{saved.name}' ({saved.id})")
        return saved

    def delete_flow(self, flow_id: str):
        if not self.flow_repo.delete_flow(flow_id):
            raise FlowNotFoundError(f"Flow {flow_id} not found")
        logger.info(f"Deleted flow {flow_id}")

    def get_flow_stats(self, flow_id: str) -> FlowStats:
        """
        Usage report of a flow: totals, completion rate, average duration of
        completed sessions and a per-day timeline of the last 14 days.
        """
        flow = self.get_flow(flow_id)
        sessions = self.session_repo.list_for_flow(flow.id)

        completed = [s for s in sessions if s.completed_at is not None]
        durations = [
            (s.completed_at - s.created_at).total_seconds() for s in completed
        ]
        average_duration = round(sum(durations) / len(durations)) if durations else 0

        since = self.clock() - timedelta(days=TIMELINE_DAYS)
        recent = sorted(
            (s for s in sessions if s.created_at >= since),
            key=lambda s: s.created_at,
        )
        timeline: "OrderedDict[str, TimelinePoint]" = OrderedDict()
        for session in recent:
            day = session.created_at.date().isoformat()
            point = timeline.setdefault(day, TimelinePoint(date=day))
            point.started += 1
            if session.completed_at is not None:
                point.completed += 1

        total = len(sessions)
        return FlowStats(
            id=flow.id,
            name=flow.name,
            total_sessions=total,
            completed_sessions=len(completed),
            transfer_count=sum(1 for s in sessions if s.transferred_at is not None),
            average_duration_seconds=average_duration,
            completion_rate=round(len(completed) / total * 100) if total else 0,
            timeline=list(timeline.values()),
        )
