from .loader import render
from .templates import Template
from .question import format_question_prompt

__all__ = ["render", "Template", "format_question_prompt"]
