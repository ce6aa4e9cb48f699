"""Recovers the Mermaid source behind a diagram node.

The rendered tree rarely carries the source verbatim, so extraction walks
an ordered chain of strategies and returns the first usable text.
"""

import logging
import re
from dataclasses import dataclass
from typing import Callable, Iterable, Optional, Sequence

from bs4 import Tag

from .dom import (
    CODE_WRAPPER,
    EDITOR_CONTAINER,
    EDITOR_VIEW,
    MERMAID_CODE,
    MERMAID_SVG,
    RENDERED_CONTAINER,
    closest,
    contains,
    describe,
    has_class,
    text_content,
)
from .host import NoteEditor
from .models import DiagramSource
from .validator import is_valid

logger = logging.getLogger(__name__)

MERMAID_FENCE = re.compile(r"```mermaid\s*\n([\s\S]*?)```")
SOURCE_ATTRIBUTES = ("data-code", "data-mermaid-code", "data-source")


@dataclass
class ExtractionContext:
    root: Tag
    editor: Optional[NoteEditor] = None


Strategy = Callable[[Tag, ExtractionContext], Optional[str]]


def _text_of(element: Optional[Tag]) -> Optional[str]:
    if element is None:
        return None
    return text_content(element).strip() or None


def _first_valid(elements: Iterable[Tag]) -> Optional[str]:
    for element in elements:
        text = _text_of(element)
        if text and is_valid(text):
            return text
    return None


def from_preview_block(node: Tag, context: ExtractionContext) -> Optional[str]:
    if not (has_class(node, "cm-preview-code-block") or has_class(node, "cm-embed-block")):
        return None
    text = _text_of(node.select_one(MERMAID_CODE))
    if text:
        return text
    editor = closest(node, EDITOR_CONTAINER)
    if editor is not None:
        text = _first_valid(editor.select(MERMAID_CODE))
        if text:
            return text
    for attribute in SOURCE_ATTRIBUTES:
        value = (node.get(attribute) or "").strip()
        if value:
            return value
    return None


def from_nested_code(node: Tag, context: ExtractionContext) -> Optional[str]:
    return _text_of(node.select_one(MERMAID_CODE))


def from_enclosing_pre(node: Tag, context: ExtractionContext) -> Optional[str]:
    pre = closest(node, "pre")
    if pre is None:
        return None
    text = _text_of(pre.select_one("code"))
    if text and is_valid(text):
        return text
    return None


def from_node_itself(node: Tag, context: ExtractionContext) -> Optional[str]:
    if node.name == "code" or has_class(node, "language-mermaid"):
        return _text_of(node)
    return None


def from_rendered_svg(node: Tag, context: ExtractionContext) -> Optional[str]:
    svg = node.select_one(MERMAID_SVG)
    if svg is None:
        return None
    container = closest(svg, RENDERED_CONTAINER)
    if container is None:
        return None
    text = _first_valid(container.select(MERMAID_CODE))
    if text:
        return text
    view = closest(container, EDITOR_VIEW)
    if view is not None:
        return _first_valid(view.select(MERMAID_CODE))
    return None


def from_editor_text(node: Tag, context: ExtractionContext) -> Optional[str]:
    """First valid fenced block in the raw note.

    Only correct when the note holds a single diagram; with several, the
    first one wins regardless of which node was clicked.
    """
    if context.editor is None:
        return None
    try:
        content = context.editor.get_value()
    except Exception as exc:  # Editor API is best-effort
        logger.debug("Could not read editor content: %s", exc)
        return None
    for match in MERMAID_FENCE.finditer(content or ""):
        code = match.group(1).strip()
        if code and is_valid(code):
            return code
    return None


def from_document(node: Tag, context: ExtractionContext) -> Optional[str]:
    """Any tagged code block sharing the node's code wrapper."""
    own_wrapper = closest(node, CODE_WRAPPER)
    for code in context.root.select(MERMAID_CODE):
        text = _text_of(code)
        if not text or not is_valid(text):
            continue
        wrapper = closest(code, CODE_WRAPPER)
        if wrapper is None:
            continue
        if contains(node, wrapper) or contains(wrapper, node) or own_wrapper is wrapper:
            return text
    return None


EXTRACTION_STRATEGIES: Sequence[Strategy] = (
    from_preview_block,
    from_nested_code,
    from_enclosing_pre,
    from_node_itself,
    from_rendered_svg,
    from_editor_text,
    from_document,
)


class SourceExtractor:
    def __init__(
        self,
        root: Tag,
        editor: Optional[NoteEditor] = None,
        strategies: Sequence[Strategy] = EXTRACTION_STRATEGIES,
    ) -> None:
        self.context = ExtractionContext(root=root, editor=editor)
        self.strategies = strategies

    def extract(self, node: Tag) -> Optional[DiagramSource]:
        for rank, strategy in enumerate(self.strategies):
            text = strategy(node, self.context)
            if text:
                logger.debug("Source for %s via %s (%d chars)", describe(node), strategy.__name__, len(text))
                return DiagramSource(text=text, strategy=strategy.__name__, rank=rank)
        logger.debug("No source recovered for %s", describe(node))
        return None
