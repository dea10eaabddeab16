"""
Jinja2 rendering for chat screens.

Every screen the bot sends is a `.jinja2` file under `templates/`, named by a
`Template` constant. Screens are validated once at import so a missing file
stops the process at boot instead of the first time a technician hits it.
"""

from functools import lru_cache
from pathlib import Path
from typing import Iterator

from jinja2 import Environment, FileSystemLoader, StrictUndefined, select_autoescape

from .templates import Template

TEMPLATES_DIR = Path(__file__).parent / "templates"
SUFFIX = ".jinja2"


def _template_names() -> Iterator[str]:
    for name, value in vars(Template).items():
        if not name.startswith("_") and isinstance(value, str):
            yield value


def _validate_templates():
    """Fails fast at import if a Template constant has no file."""
    missing = [
        str(TEMPLATES_DIR / f"{name}{SUFFIX}")
        for name in _template_names()
        if not (TEMPLATES_DIR / f"{name}{SUFFIX}").is_file()
    ]
    if missing:
        raise FileNotFoundError(f"Templates missing: {', '.join(missing)}")


_validate_templates()


@lru_cache(maxsize=1)
def _get_environment() -> Environment:
    # Only `*.html.jinja2` is escaped; Markdown prompts are authored content
    return Environment(
        loader=FileSystemLoader(TEMPLATES_DIR),
        autoescape=select_autoescape(enabled_extensions=(f"html{SUFFIX}",), default=False),
        undefined=StrictUndefined,
        trim_blocks=True,
        lstrip_blocks=True,
    )


def render(template_name: str, **context) -> str:
    """
    Render a chat screen.

    Args:
        template_name: A Template constant (without the .jinja2 suffix)
        **context: Variables the template reads. Missing ones raise.

    Returns:
        Message text, stripped of surrounding whitespace
    """
    template = _get_environment().get_template(f"{template_name}{SUFFIX}")
    return template.render(**context).strip()
