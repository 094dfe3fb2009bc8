import pytest

from helpdesk_chatbot.domain.models import InputNode, InputValidation, QuestionNode, QuestionOption
from helpdesk_chatbot.execution.validation import (
    EMAIL_MESSAGE,
    NUMBER_MESSAGE,
    PHONE_MESSAGE,
    REGEX_MESSAGE,
    REQUIRED_MESSAGE,
    normalize_text,
    resolve_option,
    validate_input,
)


def input_node(**validation):
    return InputNode(id="i", field="value", validation=InputValidation(**validation) if validation else None)


class TestValidateInput:
    def test_blank_is_required(self):
        outcome = validate_input(input_node(), "   ")
        assert not outcome.ok
        assert outcome.message == REQUIRED_MESSAGE

    def test_no_rules_accepts_anything(self):
        assert validate_input(input_node(), "whatever").ok

    def test_min_length(self):
        outcome = validate_input(input_node(min_length=5), "abc")
        assert not outcome.ok
        assert "5" in outcome.message

    def test_max_length(self):
        outcome = validate_input(input_node(max_length=3), "abcdef")
        assert not outcome.ok
        assert "3" in outcome.message

    def test_length_is_measured_after_trim(self):
        assert validate_input(input_node(max_length=3), "  abc  ").ok

    @pytest.mark.parametrize("value", ["42", "-7", "3.14", "3,14"])
    def test_number_accepted(self, value):
        assert validate_input(input_node(type="number"), value).ok

    def test_number_rejected(self):
        outcome = validate_input(input_node(type="number"), "12a")
        assert outcome.message == NUMBER_MESSAGE

    def test_email(self):
        assert validate_input(input_node(type="email"), "ana@example.com").ok
        assert validate_input(input_node(type="email"), "ana@example").message == EMAIL_MESSAGE

    def test_phone_counts_digits_only(self):
        assert validate_input(input_node(type="phone"), "+55 (11) 98765-4321").ok
        assert validate_input(input_node(type="phone"), "12345").message == PHONE_MESSAGE

    def test_regex(self):
        assert validate_input(input_node(regex=r"^[A-Z]{3}\d{4}$"), "ABC1234").ok
        assert validate_input(input_node(regex=r"^[A-Z]{3}\d{4}$"), "abc").message == REGEX_MESSAGE

    def test_invalid_regex_is_skipped(self):
        assert validate_input(input_node(regex="(unclosed"), "anything").ok

    def test_custom_message_replaces_rule_message(self):
        outcome = validate_input(input_node(type="number", message="Digits please"), "abc")
        assert outcome.message == "Digits please"

    def test_first_failing_rule_wins(self):
        outcome = validate_input(input_node(min_length=10, type="number"), "abc")
        assert "10" in outcome.message


class TestNormalizeText:
    def test_strips_diacritics_and_case(self):
        assert normalize_text("  SÍM ") == "sim"
        assert normalize_text("Não") == "nao"


class TestResolveOption:
    @pytest.fixture
    def question(self):
        return QuestionNode(
            id="q",
            next="after",
            store_field="answer",
            options=(
                QuestionOption(value="Sim", next="yes"),
                QuestionOption(value="no", label="Não", keywords=("nope",), store_value="N"),
            ),
        )

    @pytest.mark.parametrize("answer", ["Sim", "sim", "SIM", "sím", " 1 "])
    def test_case_and_diacritic_insensitive(self, question, answer):
        match = resolve_option(question, answer)
        assert match is not None
        assert match.next_node_id == "yes"
        assert match.stored_value == "Sim"
        assert match.captured_input == "Sim"

    def test_label_keyword_and_position(self, question):
        for answer in ["nao", "NOPE", "2", "no"]:
            match = resolve_option(question, answer)
            assert match.stored_value == "N"
            # option without next falls back to the node next
            assert match.next_node_id == "after"

    def test_no_match(self, question):
        assert resolve_option(question, "maybe") is None

    def test_blank_never_matches(self, question):
        assert resolve_option(question, "  ") is None

    def test_free_text(self, question):
        node = QuestionNode(
            id="q",
            next="after",
            default_next="free",
            store_field="answer",
            allow_free_text=True,
            options=question.options,
        )
        match = resolve_option(node, "something else")
        assert match.free_text is True
        assert match.next_node_id == "free"
        assert match.stored_value == "something else"

    def test_free_text_without_store_field(self):
        node = QuestionNode(id="q", next="after", allow_free_text=True)
        match = resolve_option(node, "hello")
        assert match.stored_value is None
        assert match.next_node_id == "after"
