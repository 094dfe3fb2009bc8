"""
Jinja2 rendering of bot message templates.

Templates ship inside the package under templates/ and produce plain
WhatsApp text. Nothing is HTML-escaped, and a variable missing from the
render context raises instead of rendering as an empty string.
"""

from functools import lru_cache
from typing import Any, Set

from jinja2 import Environment, PackageLoader, StrictUndefined

from .templates import Template

TEMPLATE_SUFFIX = ".jinja2"


@lru_cache(maxsize=1)
def get_environment() -> Environment:
    return Environment(
        loader=PackageLoader(__package__, "templates"),
        autoescape=False,
        undefined=StrictUndefined,
        trim_blocks=True,
        lstrip_blocks=True,
    )


def declared_templates() -> Set[str]:
    return {value for name, value in vars(Template).items() if not name.startswith("_")}


def check_templates(env: Environment):
    """Raises FileNotFoundError when a Template constant has no file behind it."""
    shipped = {name[: -len(TEMPLATE_SUFFIX)] for name in env.list_templates(extensions=["jinja2"])}
    missing = declared_templates() - shipped
    if missing:
        raise FileNotFoundError(f"Bot message templates missing: {', '.join(sorted(missing))}")


check_templates(get_environment())


def render(template_name: str, **context: Any) -> str:
    """Renders templates/<template_name>.jinja2 with the given variables."""
    return get_environment().get_template(template_name + TEMPLATE_SUFFIX).render(**context)
