from datetime import datetime, timedelta, timezone

from helpdesk_chatbot.domain.catalog import ChatbotFlow
from helpdesk_chatbot.domain.models import TriggerType
from helpdesk_chatbot.repositories.flow import InMemoryFlowRepository
from helpdesk_chatbot.services.flow_selector import KeywordFlowSelector, matches_keywords


def flow(name, trigger_type, keywords=(), **extra):
    return ChatbotFlow(
        name=name,
        trigger_type=trigger_type,
        keywords=list(keywords),
        entry_node_id="start",
        **extra,
    )


class TestMatchesKeywords:
    def test_substring_match(self):
        assert matches_keywords(["boleto"], "Preciso da segunda via do BOLETO")

    def test_diacritic_insensitive(self):
        assert matches_keywords(["promoção"], "tem promocao hoje?")

    def test_blank_keywords_never_match(self):
        assert not matches_keywords(["", "   "], "anything")

    def test_no_match(self):
        assert not matches_keywords(["refund"], "hello")


class TestKeywordFlowSelector:
    selector = KeywordFlowSelector()

    def test_keyword_flow_wins_over_default(self):
        default = flow("Default", TriggerType.DEFAULT)
        sales = flow("Sales", TriggerType.KEYWORD, ["price"])
        assert self.selector.select([default, sales], "What is the price?") is sales

    def test_falls_back_to_first_default(self):
        first = flow("Default A", TriggerType.DEFAULT)
        second = flow("Default B", TriggerType.DEFAULT)
        sales = flow("Sales", TriggerType.KEYWORD, ["price"])
        assert self.selector.select([first, sales, second], "hello") is first

    def test_manual_flows_are_never_selected(self):
        manual = flow("Manual", TriggerType.MANUAL, ["hello"])
        assert self.selector.select([manual], "hello") is None

    def test_no_candidates(self):
        assert self.selector.select([], "hello") is None

    def test_first_matching_keyword_flow_wins(self):
        a = flow("A", TriggerType.KEYWORD, ["order"])
        b = flow("B", TriggerType.KEYWORD, ["order"])
        assert self.selector.select([a, b], "my order") is a

    def test_priority_order_from_repository(self):
        now = datetime.now(timezone.utc)
        old_primary = flow("Primary", TriggerType.DEFAULT, is_primary=True, created_at=now - timedelta(days=3))
        newer_default = flow("Newer", TriggerType.DEFAULT, created_at=now)
        inactive = flow("Inactive", TriggerType.DEFAULT, is_active=False, created_at=now + timedelta(days=1))
        repository = InMemoryFlowRepository([newer_default, old_primary, inactive])

        active = repository.list_active_flows()
        assert [f.name for f in active] == ["Primary", "Newer"]
        assert self.selector.select(active, "hi") is old_primary
