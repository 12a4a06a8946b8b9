"""
Hostplay Templating Engine

Jinja2-based rendering of template task bodies.

Placeholders are Jinja2 expressions (``{{ name }}``). Rendering is strict:
a placeholder whose variable is not bound raises TemplateError, so a
template task never deploys a half-rendered file.
"""

from typing import Dict, Optional

from jinja2 import Environment, StrictUndefined, TemplateSyntaxError, UndefinedError

from hostplay.engine.errors import TemplateError


class TemplateRenderer:
    """
    Jinja2 renderer for template task bodies.

    Rendering has no side effects and is deterministic: the same body and
    variables always produce byte-identical output.
    """

    def __init__(self):
        self.env = Environment(
            undefined=StrictUndefined,
            variable_start_string='{{',
            variable_end_string='}}',
            block_start_string='{%',
            block_end_string='%}',
            comment_start_string='{#',
            comment_end_string='#}',
            # Don't auto-escape (we're not rendering HTML)
            autoescape=False,
            # Keep trailing newlines
            keep_trailing_newline=True,
        )

    def render(self, body: str, variables: Dict[str, str]) -> str:
        """
        Render a template body with variables.

        Args:
            body: Template text containing ``{{ }}`` placeholders
            variables: Mapping of placeholder name to value

        Returns:
            Rendered text

        Raises:
            TemplateError: If the body is invalid or a placeholder is unbound
        """
        # Fast path: no template markers
        if '{{' not in body and '{%' not in body and '{#' not in body:
            return body

        try:
            template = self.env.from_string(body)
            return template.render(variables)
        except UndefinedError as e:
            raise TemplateError(
                f"Undefined variable: {e}",
                template=body,
                variable=_undefined_name(e),
            )
        except TemplateSyntaxError as e:
            raise TemplateError(
                f"Template syntax error: {e}",
                template=body
            )


def _undefined_name(error: UndefinedError) -> Optional[str]:
    # jinja2 phrases it as "'name' is undefined"
    message = str(error)
    if message.startswith("'") and "' is undefined" in message:
        return message[1:message.index("' is undefined")]
    return None


# Singleton instance for convenience
_renderer: Optional[TemplateRenderer] = None


def get_renderer() -> TemplateRenderer:
    """Get the singleton renderer instance."""
    global _renderer
    if _renderer is None:
        _renderer = TemplateRenderer()
    return _renderer


def render(body: str, variables: Dict[str, str]) -> str:
    """Convenience function to render a template body."""
    return get_renderer().render(body, variables)
