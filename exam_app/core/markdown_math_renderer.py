"""Markdown + LaTeX rendering of question prompts for the student page.

Prompts are converted to HTML fragments here and MathJax typesets any ``$...$``
math in the browser, so the bank can store plain Markdown.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from html import escape

from markdown_it import MarkdownIt


@dataclass(slots=True)
class MarkdownMathRenderer:
    """Converts markdown-with-math prompts into HTML fragments."""

    enable_html: bool = False
    _markdown: MarkdownIt = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._markdown = (
            MarkdownIt("commonmark", {"html": self.enable_html})
            .enable("table")
            .enable("strikethrough")
        )

    def render_fragment(self, markdown_text: str) -> str:
        sanitized = markdown_text.strip()
        if not sanitized:
            return "<p><em>No content provided.</em></p>"
        return self._markdown.render(sanitized)

    def render_prompt(self, markdown_text: str, image_url: str | None = None) -> str:
        """Render a question prompt, appending its illustration when present."""
        html = self.render_fragment(markdown_text)
        if image_url:
            html += f'<p><img class="question-image" src="{escape(image_url, quote=True)}" alt="Question illustration" /></p>'
        return html


renderer = MarkdownMathRenderer()
