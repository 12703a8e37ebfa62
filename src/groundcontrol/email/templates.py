"""
Email bodies rendered with Jinja2.
"""

from dataclasses import dataclass
from typing import Any

from jinja2 import Environment, select_autoescape


@dataclass(frozen=True)
class RenderedEmail:
    subject: str
    text: str
    html: str | None = None


def _blank_none(value: Any) -> Any:
    return "" if value is None else value


class TemplateRenderer:
    """Renders subject, text and HTML templates against one context.

    Only the HTML body is autoescaped. Missing variables and None render empty.
    """

    def __init__(self) -> None:
        self._html_env = Environment(
            autoescape=select_autoescape(["html", "xml"], default_for_string=True),
            finalize=_blank_none,
        )
        self._text_env = Environment(autoescape=False, keep_trailing_newline=True, finalize=_blank_none)

    def render(
        self,
        subject: str,
        text: str,
        variables: dict[str, Any],
        html_body: str | None = None,
    ) -> RenderedEmail:
        html = None
        if html_body:
            html = self._html_env.from_string(html_body).render(**variables)
        return RenderedEmail(
            subject=self._text_env.from_string(subject).render(**variables),
            text=self._text_env.from_string(text).render(**variables),
            html=html,
        )


EVENT_DELETION_SUBJECT = "Your event has been cancelled"

EVENT_DELETION_TEXT = """\
{{ message }}

Cancelled event(s):
{{ event_list }}
"""

EVENT_DELETION_HTML = """\
<p>{{ message }}</p>
<p>Cancelled event(s):</p>
<pre>{{ event_list }}</pre>
"""

ADMIN_EVENT_INVITE_TEXT = """\
{{ sender_message }}

{{ host_message }}
"""

# Host-written subjects are passed in as a value, never compiled as a template
ADMIN_EVENT_INVITE_SUBJECT = "{{ subject }}"
