"""
Jinja2 template rendering with strict validation.

Renders template prompts with a variables map. Any variable referenced by the
template but absent from the map is an error rather than an empty string.
"""

from typing import Any

from jinja2 import StrictUndefined, TemplateSyntaxError, UndefinedError
from jinja2.exceptions import SecurityError
from jinja2.sandbox import SandboxedEnvironment


class TemplateError(Exception):
    """Raised when template rendering fails."""

    pass


# Prompt content is user-supplied, so render it sandboxed
_jinja_env = SandboxedEnvironment(undefined=StrictUndefined)


def render_template(
    content: str | None,
    defaults: dict[str, Any] | None,
    variables: dict[str, Any] | None,
) -> str:
    """
    Render a Jinja2 template.

    Args:
        content: The Jinja2 template content. Returns empty string if None.
        defaults: Default values stored with the prompt (template_variables).
        variables: Caller-supplied values. These override defaults of the same name.

    Returns:
        The rendered template string.

    Raises:
        TemplateError: If the template has invalid syntax or references a variable
            that was not supplied.
    """
    if not content:
        return ""

    render_args = {**(defaults or {}), **(variables or {})}

    try:
        template = _jinja_env.from_string(content)
        return template.render(**render_args)
    except TemplateSyntaxError as e:
        raise TemplateError(f"Template syntax error: {e.message}") from e
    except UndefinedError as e:
        raise TemplateError(f"Template variable error: {e}") from e
    except SecurityError as e:
        raise TemplateError(f"Template uses a disallowed operation: {e}") from e
