"""Places export controls next to the host's own block controls."""

import logging
from typing import Any, Callable, Optional, Sequence

from bs4 import BeautifulSoup, Tag

from .dom import (
    ACTION_BAR,
    BLOCK_CONTAINER_CLASSES,
    BLOCK_WRAPPER,
    CONTROL_MARKER,
    EDIT_BUTTON,
    EDIT_BUTTON_BY_LABEL,
    EDIT_CONTROL,
    EXPORT_BUTTON_CLASS,
    EXPORT_CONTAINER_CLASS,
    SYNTH_WRAPPER,
    closest,
    contains,
    describe,
    has_class,
)
from .host import HostDocument

logger = logging.getLogger(__name__)

ANCESTOR_DEPTH = 10

EXPORT_ICON = (
    '<svg width="16" height="16" viewBox="0 0 24 24" fill="none" stroke="currentColor" '
    'stroke-width="2" stroke-linecap="round" stroke-linejoin="round">'
    '<path d="M21 15v4a2 2 0 0 1-2 2H5a2 2 0 0 1-2-2v-4"></path>'
    '<polyline points="7 10 12 15 17 10"></polyline>'
    '<line x1="12" y1="15" x2="12" y2="3"></line>'
    "</svg>"
)

AnchorStrategy = Callable[[Tag, HostDocument], Optional[Tag]]


def is_block_container(node: Tag) -> bool:
    return node.has_attr("data-code-block") or any(
        has_class(node, name) for name in BLOCK_CONTAINER_CLASSES
    )


def anchor_at_edit_button(node: Tag, document: HostDocument) -> Optional[Tag]:
    """The container of the host's edit button inside the block wrapper."""
    wrapper = closest(node, BLOCK_WRAPPER)
    if wrapper is None:
        return None
    edit = wrapper.select_one(EDIT_BUTTON)
    if edit is not None and edit.parent is not None:
        return edit.parent
    return None


def _owns_edit_button(edit: Tag, node: Tag) -> bool:
    wrapper = closest(edit, BLOCK_WRAPPER)
    return wrapper is None or contains(wrapper, node)


def anchor_in_ancestors(node: Tag, document: HostDocument) -> Optional[Tag]:
    """Walk up looking for an edit button or a generic block container.

    Edit buttons belonging to a neighbouring block are skipped.
    """
    current = node
    for _ in range(ANCESTOR_DEPTH):
        current = current.parent
        # The whole page is never a safe anchor.
        if current is None or isinstance(current, BeautifulSoup) or current.name in ("body", "html"):
            return None
        for edit in current.select(EDIT_BUTTON):
            if edit.parent is not None and _owns_edit_button(edit, node):
                return edit.parent
        if is_block_container(current):
            return current.select_one(ACTION_BAR) or current
    return None


def anchor_from_document(node: Tag, document: HostDocument) -> Optional[Tag]:
    """Accept a labelled edit button elsewhere only if it shares our wrapper."""
    edit = document.select_one(EDIT_BUTTON_BY_LABEL)
    if edit is None or edit.parent is None:
        return None
    wrapper = closest(node, BLOCK_WRAPPER)
    if wrapper is not None and closest(edit, BLOCK_WRAPPER) is wrapper:
        return edit.parent
    return None


def synthesized_anchor(node: Tag, document: HostDocument) -> Optional[Tag]:
    """A small positioned container inside the wrapper, created once."""
    wrapper = closest(node, SYNTH_WRAPPER)
    if wrapper is None:
        return None
    existing = wrapper.select_one(f".{EXPORT_CONTAINER_CLASS}")
    if existing is not None:
        return existing
    container = document.create_element("div", {"class": EXPORT_CONTAINER_CLASS})
    document.set_style(container, position="absolute", top="4px", right="4px", display="flex", gap="4px")
    document.set_style(wrapper, position="relative")
    return document.append(wrapper, container)


ANCHOR_STRATEGIES: Sequence[AnchorStrategy] = (
    anchor_at_edit_button,
    anchor_in_ancestors,
    anchor_from_document,
    synthesized_anchor,
)


class AnchorResolver:
    """Finds an anchor for a diagram and attaches the export control."""

    def __init__(self, document: HostDocument, strategies: Sequence[AnchorStrategy] = ANCHOR_STRATEGIES) -> None:
        self.document = document
        self.strategies = strategies

    def resolve(self, node: Tag) -> Optional[Tag]:
        for strategy in self.strategies:
            anchor = strategy(node, self.document)
            if anchor is not None:
                logger.debug("Anchor for %s via %s: %s", describe(node), strategy.__name__, describe(anchor))
                return anchor
        return None

    def attach(self, anchor: Tag, on_click: Callable[[], Any]) -> Optional[Tag]:
        """Insert a control after the edit button, else first in the anchor.

        Returns None when the anchor already holds a control.
        """
        if anchor.select_one(f".{EXPORT_BUTTON_CLASS}") is not None:
            return None
        button = build_control(self.document)
        edit = anchor.select_one(EDIT_CONTROL)
        if edit is not None:
            self.document.insert_after(edit, button)
        else:
            self.document.prepend(anchor, button)
        self.document.on_click(button, on_click)
        return button


def build_control(document: HostDocument) -> Tag:
    button = document.create_element(
        "button",
        {
            "class": EXPORT_BUTTON_CLASS,
            "aria-label": "Export Mermaid diagram",
            "title": "Export diagram",
            CONTROL_MARKER: "true",
        },
        html=EXPORT_ICON,
    )
    document.set_style(
        button,
        display="inline-flex",
        align_items="center",
        justify_content="center",
        padding="4px 8px",
        margin="2px",
        border="none",
        background="transparent",
        color="var(--text-muted)",
        cursor="pointer",
        border_radius="4px",
        opacity="0.8",
    )
    return button
