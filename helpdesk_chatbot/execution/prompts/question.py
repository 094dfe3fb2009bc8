"""
Question prompt formatting.

A question is sent as its content followed by one numbered line per option,
e.g. "Pick one\n1. Sales\n2. Support". The numbers are what contacts usually
type back, and resolve_option accepts them.
"""

from ...domain.models import QuestionNode
from .loader import render
from .templates import Template


def format_question_prompt(node: QuestionNode) -> str:
    if not node.options:
        return node.content

    rendered = render(Template.QUESTION_PROMPT, content=node.content, options=node.options)
    # The last option line keeps its newline from the loop body
    return rendered.rstrip("\n")
