"""
Input Validation - Answer Checking for Suspended Nodes

Validates free-text answers to input nodes and matches answers to question
node options. Matching is case and diacritic insensitive so "sim", "SIM" and
"sím" all select an option labelled "Sim".
"""

import logging
import re
import unicodedata
from dataclasses import dataclass
from typing import Optional

from ..domain.models import InputNode, QuestionNode

logger = logging.getLogger(__name__)

REQUIRED_MESSAGE = "I need this information to continue."
MIN_LENGTH_MESSAGE = "Please enter at least {min_length} characters."
MAX_LENGTH_MESSAGE = "Please enter at most {max_length} characters."
NUMBER_MESSAGE = "This field only accepts numbers."
EMAIL_MESSAGE = "Please enter a valid email address."
PHONE_MESSAGE = "Please enter a valid phone number including the area code."
REGEX_MESSAGE = "The value you entered is not valid."

NUMBER_PATTERN = re.compile(r"^-?\d+(?:[.,]\d+)?$")
EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
PHONE_MIN_DIGITS = 10
PHONE_MAX_DIGITS = 14


@dataclass(frozen=True)
class ValidationOutcome:
    ok: bool
    message: Optional[str] = None


VALID = ValidationOutcome(ok=True)


@dataclass(frozen=True)
class OptionMatch:
    """
    Result of matching an answer against a question node.

    Attributes:
        node_id: The question node.
        next_node_id: Where the flow continues.
        stored_value: Value for the node store_field (None = store nothing).
        captured_input: What goes into the history entry.
        free_text: True when no option matched and free text was accepted.
    """
    node_id: str
    next_node_id: Optional[str]
    stored_value: Optional[str]
    captured_input: str
    free_text: bool = False


def normalize_text(value: str) -> str:
    """Strips diacritics, trims and case-folds."""
    decomposed = unicodedata.normalize("NFD", value)
    stripped = "".join(char for char in decomposed if not unicodedata.combining(char))
    return stripped.strip().casefold()


def _fail(custom_message: Optional[str], default: str) -> ValidationOutcome:
    return ValidationOutcome(ok=False, message=custom_message or default)


def validate_input(node: InputNode, raw_value: Optional[str]) -> ValidationOutcome:
    """
    Checks an answer against the node validation rules.

    Order: required, min_length, max_length, type, regex. The first failing
    rule decides the message.
    """
    trimmed = (raw_value or "").strip()
    validation = node.validation
    custom_message = validation.message if validation else None

    if not trimmed:
        return _fail(custom_message, REQUIRED_MESSAGE)

    if validation is None:
        return VALID

    if validation.min_length is not None and len(trimmed) < validation.min_length:
        return _fail(custom_message, MIN_LENGTH_MESSAGE.format(min_length=validation.min_length))

    if validation.max_length is not None and len(trimmed) > validation.max_length:
        return _fail(custom_message, MAX_LENGTH_MESSAGE.format(max_length=validation.max_length))

    if validation.type == "number":
        if not NUMBER_PATTERN.match(trimmed):
            return _fail(custom_message, NUMBER_MESSAGE)
    elif validation.type == "email":
        if not EMAIL_PATTERN.match(trimmed):
            return _fail(custom_message, EMAIL_MESSAGE)
    elif validation.type == "phone":
        digits = re.sub(r"\D", "", trimmed)
        if not PHONE_MIN_DIGITS <= len(digits) <= PHONE_MAX_DIGITS:
            return _fail(custom_message, PHONE_MESSAGE)

    if validation.regex:
        try:
            pattern = re.compile(validation.regex)
        except re.error as e:
            # Author error: skip the rule rather than block the contact
            logger.warning(f"Invalid regex on node {node.id}: {e}")
        else:
            if not pattern.search(trimmed):
                return _fail(custom_message, REGEX_MESSAGE)

    return VALID


def resolve_option(node: QuestionNode, raw_value: Optional[str]) -> Optional[OptionMatch]:
    """
    Finds the option selected by an answer.

    Candidates per option are its value, label, keywords and 1-based position.
    Returns None when nothing matches and the node does not accept free text.
    """
    value = raw_value or ""
    normalized = normalize_text(value)
    if not normalized:
        return None

    for position, option in enumerate(node.options, start=1):
        candidates = [option.value, option.label, *option.keywords, str(position)]
        normalized_candidates = {
            normalize_text(candidate) for candidate in candidates if candidate
        }
        if normalized in normalized_candidates:
            return OptionMatch(
                node_id=node.id,
                next_node_id=option.next or node.next,
                stored_value=option.store_value or option.value,
                captured_input=option.value,
            )

    if node.allow_free_text:
        return OptionMatch(
            node_id=node.id,
            next_node_id=node.default_next or node.next,
            stored_value=value if node.store_field else None,
            captured_input=value,
            free_text=True,
        )

    return None
