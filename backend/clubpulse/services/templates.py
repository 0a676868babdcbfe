"""Role-specific warning templates.

Roles are grouped into buckets, each with a few accepted spellings. A member's
normalized role picks the bucket; anything unmatched (or missing) gets the generic
template. Templates are Jinja2 files under templates/warnings/ and receive
name, activity_count, threshold and role.
"""
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

from jinja2 import Environment, FileSystemLoader, StrictUndefined, TemplateError, select_autoescape

from ..models.role_threshold import normalize_role

TEMPLATE_DIR = Path(__file__).resolve().parent.parent / "templates" / "warnings"

GENERIC_TEMPLATE = "low_activity_generic"

ROLE_BUCKETS: Dict[str, tuple] = {
    "low_activity_co_director": ("co-director", "co director", "codirector", "co-directors"),
    "low_activity_senior_executive": ("senior executive", "senior exec", "sr executive", "sr. executive"),
    "low_activity_executive": ("executive", "exec"),
    "low_activity_junior_executive": ("junior executive", "junior exec", "jr executive", "jr. executive"),
    "low_activity_new_recruit": ("new recruit", "recruit", "new member"),
}

_ALIASES = {alias: template for template, aliases in ROLE_BUCKETS.items() for alias in aliases}

DEFAULT_SUBJECT = "Club Activity Alert for {{ name }}"


class TemplateRenderError(RuntimeError):
    """A warning template could not be loaded or rendered."""


@dataclass
class RenderedMessage:
    template: str
    subject: str
    body: str


def select_template(role: Optional[str]) -> str:
    return _ALIASES.get(normalize_role(role), GENERIC_TEMPLATE)


class WarningRenderer:
    def __init__(self, template_dir: str | Path | None = None, subject: str = DEFAULT_SUBJECT):
        self.template_dir = Path(template_dir) if template_dir else TEMPLATE_DIR
        self.env = Environment(
            loader=FileSystemLoader(str(self.template_dir)),
            autoescape=select_autoescape(["html"]),
            undefined=StrictUndefined,
            trim_blocks=True,
            lstrip_blocks=True,
        )
        self._subject = subject

    def available_templates(self) -> List[str]:
        if not self.template_dir.is_dir():
            return []
        return sorted(p.stem for p in self.template_dir.glob("low_activity_*.html"))

    def render(self, template_id: str, **context: Any) -> RenderedMessage:
        """Render subject and body for one member.

        Raises TemplateRenderError on a missing template or a placeholder without a value.
        """
        try:
            body = self.env.get_template(f"{template_id}.html").render(**context)
            subject = self.env.from_string(self._subject).render(**context)
        except TemplateError as e:
            raise TemplateRenderError(f"{template_id}: {e}") from e
        return RenderedMessage(template=template_id, subject=subject.strip(), body=body)

    def render_for_role(self, role: Optional[str], **context: Any) -> RenderedMessage:
        return self.render(select_template(role), role=role or '', **context)
