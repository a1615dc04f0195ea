from pathlib import Path
from typing import Any, Dict, Optional

from jinja2 import Environment, FileSystemLoader, StrictUndefined, select_autoescape
from markupsafe import Markup

from .config import DEFAULT_TEMPLATE_DIR


def _build_env(template_dir: Path) -> Environment:
    return Environment(
        loader=FileSystemLoader(template_dir),
        autoescape=select_autoescape(enabled_extensions=("html", "j2")),
        trim_blocks=True,
        lstrip_blocks=True,
        undefined=StrictUndefined,
    )


class TemplateRenderer:
    """
    Thin wrapper around Jinja2 so section builders and the composer share one
    environment. Autoescaping is on for every ``.html.j2`` template; SafeText
    values pass through untouched because they are already escaped.
    Undefined variables raise instead of printing an empty string.
    """

    def __init__(self, template_dir: Optional[Path] = None):
        self.template_dir = template_dir or DEFAULT_TEMPLATE_DIR
        self.env = _build_env(self.template_dir)

    def render(self, template_name: str, payload: Dict[str, Any]) -> Markup:
        template = self.env.get_template(template_name)
        return Markup(template.render(**payload))


_DEFAULT_RENDERER: Optional[TemplateRenderer] = None


def default_renderer() -> TemplateRenderer:
    global _DEFAULT_RENDERER
    if _DEFAULT_RENDERER is None:
        _DEFAULT_RENDERER = TemplateRenderer()
    return _DEFAULT_RENDERER
