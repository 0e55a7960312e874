"""Markdown rendering for quiz descriptions and answer explanations.

Raw HTML in the source text is escaped rather than passed through, since the
text comes from quiz creators and from the language model.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from markdown_it import MarkdownIt


@dataclass(slots=True)
class MarkdownRenderer:
    """Converts markdown into HTML fragments."""

    enable_html: bool = False
    _markdown: MarkdownIt = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._markdown = MarkdownIt("commonmark", {"html": self.enable_html}).enable("strikethrough")

    def render_fragment(self, markdown_text: str | None) -> str | None:
        """Render markdown into an HTML fragment; blank input gives ``None``."""
        sanitized = (markdown_text or "").strip()
        if not sanitized:
            return None
        return self._markdown.render(sanitized)


renderer = MarkdownRenderer()
