"""
Flow Selector.

Defines the contract for the component that picks which flow starts a new
conversation, given the first message of an unclassified ticket.
"""
from abc import ABC, abstractmethod
from typing import Iterable, Optional, Sequence

from ..domain.catalog import ChatbotFlow
from ..domain.models import TriggerType
from ..execution.validation import normalize_text


def matches_keywords(keywords: Iterable[str], text: str) -> bool:
    """Case and diacritic insensitive substring match. Blank keywords never match."""
    normalized = normalize_text(text)
    for keyword in keywords:
        needle = normalize_text(keyword)
        if needle and needle in normalized:
            return True
    return False


class FlowSelector(ABC):
    @abstractmethod
    def select(self, flows: Sequence[ChatbotFlow], message_text: str) -> Optional[ChatbotFlow]:
        """
        Chooses the flow for a new session.

        Args:
            flows: Active flows in priority order (primary first, then newest).
            message_text: First message of the conversation.

        Returns:
            The selected flow, or None to leave the ticket to humans.
        """
        pass


class KeywordFlowSelector(FlowSelector):
    """
    MANUAL flows never start automatically. The first DEFAULT flow is kept as
    fallback; otherwise the first KEYWORD flow whose keywords appear in the
    message wins.
    """

    def select(self, flows: Sequence[ChatbotFlow], message_text: str) -> Optional[ChatbotFlow]:
        text = (message_text or "").strip()
        fallback: Optional[ChatbotFlow] = None

        for flow in flows:
            if flow.trigger_type == TriggerType.MANUAL:
                continue

            if flow.trigger_type == TriggerType.DEFAULT:
                if fallback is None:
                    fallback = flow
                continue

            if matches_keywords(flow.keywords, text):
                return flow

        return fallback
