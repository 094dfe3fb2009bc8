from datetime import datetime, timedelta, timezone

import pytest

from helpdesk_chatbot.domain.exceptions import InvalidFlowDefinitionError
from helpdesk_chatbot.domain.models import TriggerType
from helpdesk_chatbot.schemas.flows import FlowDraft
from helpdesk_chatbot.services.exceptions import FlowNotFoundError, FlowValidationError
from helpdesk_chatbot.services.flows import FlowService
from helpdesk_chatbot.state.models import SessionState

NOW = datetime(2024, 5, 15, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def service(flow_repository, session_repository):
    return FlowService(flow_repository, session_repository, clock=lambda: NOW)


def draft(definition, **fields):
    values = {"name": "Support", "entry_node_id": definition["entryNodeId"], "definition": definition}
    values.update(fields)
    return FlowDraft(**values)


class TestCreateFlow:
    def test_defaults(self, service, pick_definition):
        flow = service.create_flow(draft(pick_definition))
        assert flow.is_active is True
        assert flow.is_primary is False
        assert flow.trigger_type == TriggerType.KEYWORD
        assert flow.definition["entryNodeId"] == "start"

    def test_name_required(self, service, pick_definition):
        with pytest.raises(FlowValidationError):
            service.create_flow(draft(pick_definition, name="   "))

    def test_entry_node_required(self, service, pick_definition):
        with pytest.raises(FlowValidationError):
            service.create_flow(FlowDraft(name="Support", definition=pick_definition))

    def test_entry_node_is_merged_into_definition(self, service, pick_definition):
        flow = service.create_flow(draft(pick_definition, entry_node_id="q"))
        assert flow.entry_node_id == "q"
        assert flow.definition["entryNodeId"] == "q"

    def test_invalid_definition(self, service, pick_definition):
        with pytest.raises(InvalidFlowDefinitionError):
            service.create_flow(draft(pick_definition, entry_node_id="ghost"))

    def test_missing_definition_is_invalid(self, service):
        with pytest.raises(InvalidFlowDefinitionError):
            service.create_flow(FlowDraft(name="Support", entry_node_id="start"))

    def test_keywords_are_cleaned(self, service, pick_definition):
        flow = service.create_flow(draft(pick_definition, keywords=[" price ", "", "  ", 7, "order"]))
        assert flow.keywords == ["price", "order"]

    def test_primary_forces_default_and_demotes_others(self, service, flow_repository, pick_definition):
        old = service.create_flow(draft(pick_definition, is_primary=True))
        new = service.create_flow(draft(pick_definition, name="New", is_primary=True, trigger_type=TriggerType.MANUAL))

        assert new.trigger_type == TriggerType.DEFAULT
        demoted = flow_repository.get_flow(old.id)
        assert demoted.is_primary is False
        assert demoted.trigger_type == TriggerType.KEYWORD

    def test_camel_case_payload(self, service, pick_definition):
        payload = FlowDraft.model_validate(
            {"name": "Camel", "entryNodeId": "start", "definition": pick_definition, "offlineMessage": " Closed "}
        )
        flow = service.create_flow(payload)
        assert flow.offline_message == "Closed"


class TestUpdateFlow:
    def test_partial_update_keeps_other_fields(self, service, pick_definition):
        flow = service.create_flow(draft(pick_definition, keywords=["price"], description="Sales"))
        updated = service.update_flow(flow.id, FlowDraft(name="Renamed"))
        assert updated.name == "Renamed"
        assert updated.keywords == ["price"]
        assert updated.description == "Sales"
        assert updated.definition == flow.definition

    def test_explicit_null_clears_field(self, service, pick_definition):
        flow = service.create_flow(draft(pick_definition, description="Sales"))
        updated = service.update_flow(flow.id, FlowDraft.model_validate({"description": None}))
        assert updated.description is None

    def test_update_revalidates_definition(self, service, pick_definition):
        flow = service.create_flow(draft(pick_definition))
        with pytest.raises(InvalidFlowDefinitionError):
            service.update_flow(flow.id, FlowDraft(entry_node_id="ghost"))

    def test_trigger_type_cannot_leave_default_while_primary(self, service, pick_definition):
        flow = service.create_flow(draft(pick_definition, is_primary=True))
        updated = service.update_flow(flow.id, FlowDraft(trigger_type=TriggerType.KEYWORD))
        assert updated.trigger_type == TriggerType.DEFAULT

    def test_unknown_flow(self, service):
        with pytest.raises(FlowNotFoundError):
            service.update_flow("missing", FlowDraft(name="x"))


class TestDeleteFlow:
    def test_delete(self, service, pick_definition):
        flow = service.create_flow(draft(pick_definition))
        service.delete_flow(flow.id)
        with pytest.raises(FlowNotFoundError):
            service.get_flow(flow.id)

    def test_delete_unknown(self, service):
        with pytest.raises(FlowNotFoundError):
            service.delete_flow("missing")


class TestFlowStats:
    def _session(self, session_repository, flow_id, created_at, completed_after=None, transferred=False):
        session = session_repository.create(flow_id, f"t-{created_at.isoformat()}", None, "start", SessionState())
        update = {"created_at": created_at}
        if completed_after is not None:
            update["completed_at"] = created_at + completed_after
        if transferred:
            update["transferred_at"] = created_at
        return session_repository.save(session.model_copy(update=update))

    def test_stats(self, service, session_repository, pick_definition):
        flow = service.create_flow(draft(pick_definition))
        self._session(session_repository, flow.id, NOW - timedelta(days=1), completed_after=timedelta(seconds=30))
        self._session(
            session_repository,
            flow.id,
            NOW - timedelta(days=1, hours=1),
            completed_after=timedelta(seconds=90),
            transferred=True,
        )
        self._session(session_repository, flow.id, NOW)
        self._session(session_repository, flow.id, NOW - timedelta(days=30))

        stats = service.get_flow_stats(flow.id)

        assert stats.total_sessions == 4
        assert stats.completed_sessions == 2
        assert stats.transfer_count == 1
        assert stats.average_duration_seconds == 60
        assert stats.completion_rate == 50
        assert [(p.date, p.started, p.completed) for p in stats.timeline] == [
            ("2024-05-14", 2, 2),
            ("2024-05-15", 1, 0),
        ]

    def test_stats_without_sessions(self, service, pick_definition):
        flow = service.create_flow(draft(pick_definition))
        stats = service.get_flow_stats(flow.id)
        assert stats.completion_rate == 0
        assert stats.average_duration_seconds == 0
        assert stats.timeline == []

    def test_list_flows_counts(self, service, session_repository, pick_definition):
        flow = service.create_flow(draft(pick_definition))
        self._session(session_repository, flow.id, NOW, completed_after=timedelta(seconds=5))
        self._session(session_repository, flow.id, NOW)

        [(listed, counts)] = service.list_flows()
        assert listed.id == flow.id
        assert counts.total_sessions == 2
        assert counts.active_sessions == 1
        assert counts.completed_sessions == 1
        assert counts.transfer_count == 0
