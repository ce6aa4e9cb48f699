"""Finds diagram nodes in the current tree."""

import logging
import re
from typing import Callable, Iterable, Sequence

from bs4 import Tag

from .dom import (
    CODE_CONTAINER,
    MERMAID_CODE,
    MERMAID_SVG,
    PREVIEW_BLOCK,
    SVG_WRAPPER,
    class_names,
    closest,
    text_content,
    unique,
)
from .registry import DiagramRegistry
from .validator import DIAGRAM_KEYWORDS

logger = logging.getLogger(__name__)

KEYWORD_START = re.compile(r"(?:%s)\b" % "|".join(re.escape(keyword) for keyword in DIAGRAM_KEYWORDS))

LocatorStrategy = Callable[[Tag], Iterable[Tag]]


def find_code_blocks(root: Tag) -> Iterable[Tag]:
    """Raw source blocks tagged with the mermaid language."""
    return root.select(MERMAID_CODE)


def find_preview_blocks(root: Tag) -> Iterable[Tag]:
    """Live-preview block wrappers for mermaid fences."""
    return root.select(PREVIEW_BLOCK)


def find_rendered_svgs(root: Tag) -> Iterable[Tag]:
    """Rendered diagrams, lifted to their block wrapper.

    The host swaps raw SVG nodes freely, so the wrapper is the stable target.
    """
    for svg in root.select(MERMAID_SVG):
        parent = svg.parent
        if parent is None:
            continue
        yield closest(parent, SVG_WRAPPER) or parent


def find_keyword_containers(root: Tag) -> Iterable[Tag]:
    """Untagged code containers whose text opens with a diagram keyword.

    Containers tagged with another language, or already holding a tagged
    mermaid block, are left to the other strategies.
    """
    for element in root.select(CODE_CONTAINER):
        if any(name.startswith("language-") for name in class_names(element)):
            continue
        if element.select_one(MERMAID_CODE) is not None:
            continue
        if KEYWORD_START.match(text_content(element).strip().lower()):
            yield element


LOCATOR_STRATEGIES: Sequence[LocatorStrategy] = (
    find_code_blocks,
    find_preview_blocks,
    find_rendered_svgs,
    find_keyword_containers,
)


class DiagramLocator:
    """Unions every strategy's matches into one identity-keyed set."""

    def __init__(
        self, registry: DiagramRegistry, strategies: Sequence[LocatorStrategy] = LOCATOR_STRATEGIES
    ) -> None:
        self.registry = registry
        self.strategies = strategies

    def candidates(self, root: Tag) -> list[Tag]:
        """Every diagram node in the tree, registered or not."""
        found = []
        for strategy in self.strategies:
            matches = list(strategy(root))
            logger.debug("%s matched %d node(s)", strategy.__name__, len(matches))
            found.extend(matches)
        return unique(found)

    def locate(self, root: Tag) -> list[Tag]:
        """Diagram nodes that still need a control."""
        return [node for node in self.candidates(root) if not self.registry.is_registered(node)]
