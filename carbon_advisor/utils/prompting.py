from string import Template
from typing import Any


def render_prompt(template: str, **values: Any) -> str:
    """
    Renders a $placeholder template. Missing keys are left in place so a
    partially filled template is visible in logs instead of raising.
    """
    rendered = {key: "" if value is None else str(value) for key, value in values.items()}
    return Template(template).safe_substitute(rendered)
