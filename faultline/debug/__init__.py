"""
Faultline Debug - terminal presentations.

Provides the development diagnostic dump (counts plus every record with
its backtrace) and the generic production failure notice, as plain text
for consoles or HTML for processes whose output reaches a browser.
"""

from .pages import (
    ConsolePresenter,
    HTMLPresenter,
    TemplatePresenter,
    get_presenter,
    render_diagnostic_page,
    render_failure_page,
)

__all__ = [
    "ConsolePresenter",
    "HTMLPresenter",
    "TemplatePresenter",
    "get_presenter",
    "render_diagnostic_page",
    "render_failure_page",
]
