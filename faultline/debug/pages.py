"""
Faultline Debug Pages - terminal presentations.

Development presentations dump counts and every record with its
backtrace. Production presentations show a generic notice and nothing
else; the detail only goes to the fault log.

Templates are inlined and rendered with Jinja2. HTML output is
autoescaped; text output is not.
"""

from __future__ import annotations

import os
import sys
from typing import Any, Dict, List, Optional, TextIO

from jinja2 import DictLoader, Environment, StrictUndefined, select_autoescape

from ..faults.core import FaultRecord
from ..faults.ledger import LedgerSnapshot
from ..faults.presenter import PresentationKind, PresentationPayload, Presenter


# ============================================================================
# CSS Styles
# ============================================================================

_BASE_CSS = r"""
:root {
  --fl-bg: #001E2B;
  --fl-card: #112733;
  --fl-border: #1C3A40;
  --fl-text: #E8EDEB;
  --fl-muted: #889397;
  --fl-accent: #00ED64;
  --fl-error: #CF4A22;
  --fl-warning: #FFC010;
}
*, *::before, *::after { box-sizing: border-box; margin: 0; padding: 0; }
body {
  font-family: 'SF Mono', 'Fira Code', 'JetBrains Mono', 'Consolas', monospace;
  line-height: 1.6;
  background: var(--fl-bg);
  color: var(--fl-text);
}
.fl-container { max-width: 1100px; margin: 0 auto; padding: 32px 24px 48px; }
.fl-title { font-size: 24px; border-bottom: 2px solid var(--fl-error); padding-bottom: 12px; margin-bottom: 24px; }
.fl-card { background: var(--fl-card); border: 1px solid var(--fl-border); border-radius: 8px; padding: 16px 20px; margin-bottom: 16px; }
.fl-counts { display: flex; gap: 12px; flex-wrap: wrap; }
.fl-count { border: 1px solid var(--fl-border); border-radius: 6px; padding: 4px 10px; font-size: 13px; }
.fl-count.nonzero { border-color: var(--fl-accent); color: var(--fl-accent); }
.fl-tier { font-size: 12px; text-transform: uppercase; letter-spacing: 1px; color: var(--fl-muted); }
.fl-tier.terminal, .fl-tier.user_fatal { color: var(--fl-error); }
.fl-tier.background, .fl-tier.user_major { color: var(--fl-warning); }
.fl-message { font-size: 16px; margin: 4px 0; word-break: break-word; }
.fl-origin { font-size: 13px; color: var(--fl-muted); }
.fl-frames { list-style: none; margin-top: 10px; font-size: 12px; color: var(--fl-muted); }
.fl-frames li { border-left: 3px solid var(--fl-border); padding-left: 10px; }
.fl-notice { text-align: center; margin-top: 20vh; }
"""


# ============================================================================
# Templates
# ============================================================================

_TEMPLATES: Dict[str, str] = {
    "development.txt": """\
{{ rule }}
{{ title }}
{{ rule }}
Counts:
{% for tier, n in counts.items() %}  {{ tier.ljust(12) }} {{ n }}
{% endfor %}{{ rule }}
{% for r in records %}#{{ loop.index }} [{{ r.tier }}] {{ r.error }}: {{ r.message }}
    at {{ r.file }}:{{ r.line }}
{% for f in r.backtrace %}      {{ f.function }} ({{ f.file }}:{{ f.line }})
{% endfor %}{% endfor %}{% if extra_data %}{{ rule }}
Data:
{% for key, value in extra_data.items() %}  {{ key }} = {{ value }}
{% endfor %}{% endif %}{{ rule }}
""",
    "production.txt": """\
{{ title }}
{{ message }}
""",
    "development.html": """\
<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="utf-8">
<title>{{ title }}</title>
<style>{{ css | safe }}</style>
</head>
<body>
<div class="fl-container">
  <h1 class="fl-title">{{ title }}</h1>
  <div class="fl-card">
    <div class="fl-counts">
    {% for tier, n in counts.items() %}
      <span class="fl-count{% if n %} nonzero{% endif %}">{{ tier }}: {{ n }}</span>
    {% endfor %}
    </div>
  </div>
  {% for r in records %}
  <div class="fl-card">
    <div class="fl-tier {{ r.tier }}">{{ r.tier }} &middot; {{ r.error }}</div>
    <div class="fl-message">{{ r.message }}</div>
    <div class="fl-origin">{{ r.short_file }}:{{ r.line }}</div>
    {% if r.backtrace %}
    <ul class="fl-frames">
      {% for f in r.backtrace %}<li>{{ f.function }} &mdash; {{ f.file }}:{{ f.line }}</li>{% endfor %}
    </ul>
    {% endif %}
  </div>
  {% endfor %}
  {% if extra_data %}
  <div class="fl-card">
    {% for key, value in extra_data.items() %}<div><b>{{ key }}</b> = {{ value }}</div>{% endfor %}
  </div>
  {% endif %}
</div>
</body>
</html>
""",
    "production.html": """\
<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="utf-8">
<title>{{ title }}</title>
<style>{{ css | safe }}</style>
</head>
<body>
<div class="fl-container fl-notice">
  <h1>{{ title }}</h1>
  <hr>
  <p>{{ message }}</p>
</div>
</body>
</html>
""",
}


_env = Environment(
    loader=DictLoader(_TEMPLATES),
    autoescape=select_autoescape(
        enabled_extensions=["html", "htm", "xml"],
        default_for_string=False,
    ),
    undefined=StrictUndefined,
    keep_trailing_newline=True,
)


# ============================================================================
# Context extraction
# ============================================================================

def _short_path(filename: str) -> str:
    try:
        cwd = os.getcwd()
        if filename.startswith(cwd):
            return os.path.relpath(filename, cwd)
    except (OSError, ValueError):
        pass
    return filename


def _record_context(record: FaultRecord) -> Dict[str, Any]:
    data = record.to_dict()
    data["short_file"] = _short_path(record.file)
    return data


def _development_context(payload: PresentationPayload) -> Dict[str, Any]:
    snapshot = payload.snapshot
    return {
        "title": payload.title,
        "message": payload.message,
        "counts": snapshot.counts_dict(),
        "records": [_record_context(r) for r in snapshot.records],
        "extra_data": payload.extra_data,
        "css": _BASE_CSS,
        "rule": "-" * 72,
    }


def _production_context(payload: PresentationPayload) -> Dict[str, Any]:
    # Only title and message: production output never carries record detail
    return {
        "title": payload.title,
        "message": payload.message,
        "css": _BASE_CSS,
    }


# ============================================================================
# Main Renderers
# ============================================================================

def render_diagnostic_page(
    snapshot: LedgerSnapshot,
    *,
    title: str = "Process terminated",
    extra_data: Optional[Dict[str, Any]] = None,
    fmt: str = "txt",
) -> str:
    """Render the development dump (counts and full record list)."""
    payload = PresentationPayload(snapshot=snapshot, title=title, extra_data=extra_data or {})
    return _env.get_template(f"development.{fmt}").render(_development_context(payload))


def render_failure_page(
    *,
    title: str = "Sorry, an error occurred",
    message: str = "Details have been logged",
    fmt: str = "txt",
) -> str:
    """Render the generic production notice."""
    payload = PresentationPayload(snapshot=LedgerSnapshot(), title=title, message=message)
    return _env.get_template(f"production.{fmt}").render(_production_context(payload))


class TemplatePresenter(Presenter):
    """Writes a rendered template to a stream."""

    fmt = "txt"

    def __init__(self, stream: Optional[TextIO] = None):
        self._stream = stream

    @property
    def stream(self) -> TextIO:
        # Resolved late so redirected stdio at shutdown time is honoured
        return self._stream if self._stream is not None else sys.stderr

    def render_to_string(self, kind: PresentationKind, payload: PresentationPayload) -> str:
        if kind is PresentationKind.DEVELOPMENT:
            context = _development_context(payload)
        else:
            context = _production_context(payload)
        return _env.get_template(f"{kind.value}.{self.fmt}").render(context)

    def render(self, kind: PresentationKind, payload: PresentationPayload) -> None:
        stream = self.stream
        stream.write(self.render_to_string(kind, payload))
        stream.flush()


class ConsolePresenter(TemplatePresenter):
    """Plain-text presentation, written to stderr by default."""
    fmt = "txt"


class HTMLPresenter(TemplatePresenter):
    """HTML presentation for processes whose output reaches a browser."""
    fmt = "html"

    @property
    def stream(self) -> TextIO:
        return self._stream if self._stream is not None else sys.stdout


PRESENTERS: Dict[str, type[TemplatePresenter]] = {
    "console": ConsolePresenter,
    "text": ConsolePresenter,
    "html": HTMLPresenter,
}


def get_presenter(name: str, stream: Optional[TextIO] = None) -> TemplatePresenter:
    try:
        return PRESENTERS[name](stream)
    except KeyError:
        raise ValueError(f"Unknown presenter '{name}' (choose from {', '.join(sorted(PRESENTERS))})") from None


__all__: List[str] = [
    "ConsolePresenter",
    "HTMLPresenter",
    "TemplatePresenter",
    "get_presenter",
    "render_diagnostic_page",
    "render_failure_page",
]
