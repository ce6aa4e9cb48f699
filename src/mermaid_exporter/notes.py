"""Markdown notes rendered into a host document."""

import html

from markdown_it import MarkdownIt

_markdown = MarkdownIt("commonmark")


def render_note(markdown_text: str, title: str = "") -> str:
    """HTML for a note in a preview view; mermaid fences stay as code blocks."""
    body = _markdown.render(markdown_text)
    return (
        "<html><head>"
        f"<title>{html.escape(title)}</title>"
        "</head><body>"
        '<div class="markdown-preview-view">'
        f'<div class="markdown-preview-section">{body}</div>'
        "</div>"
        "</body></html>"
    )
