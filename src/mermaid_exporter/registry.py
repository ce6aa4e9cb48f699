"""Bookkeeping for diagrams that already carry an export control."""

import logging
from typing import Iterator, Optional

from bs4 import Tag

from .dom import EXPORT_BUTTON_CLASS, EXPORT_CONTAINER_CLASS, MERMAID_CODE, has_class
from .host import HostDocument

logger = logging.getLogger(__name__)

OWNER_SEARCH_DEPTH = 10


def find_owner(control: Tag) -> Optional[Tag]:
    """Walk up from a control to the diagram it was attached for."""
    current = control
    for _ in range(OWNER_SEARCH_DEPTH):
        current = current.parent
        if current is None or current.name == "[document]":
            break
        if (
            has_class(current, "mermaid")
            or current.select_one(MERMAID_CODE) is not None
            or current.select_one(".mermaid svg") is not None
        ):
            return current
    return None


class DiagramRegistry:
    """Tracks registered diagram nodes by identity.

    A node is registered iff a control was placed for it. ``cleanup``
    drops nodes that left the tree and removes their controls along with
    any control whose owner is gone.
    """

    def __init__(self, document: HostDocument) -> None:
        self.document = document
        self._nodes: dict[int, Tag] = {}
        self._controls: dict[int, Tag] = {}

    def __len__(self) -> int:
        return len(self._nodes)

    def __iter__(self) -> Iterator[Tag]:
        return iter(list(self._nodes.values()))

    def is_registered(self, node: Tag) -> bool:
        return self._nodes.get(id(node)) is node

    def register(self, node: Tag, control: Optional[Tag] = None) -> None:
        self._nodes[id(node)] = node
        if control is not None:
            self._controls[id(node)] = control

    def control_for(self, node: Tag) -> Optional[Tag]:
        if not self.is_registered(node):
            return None
        return self._controls.get(id(node))

    def unregister_if_detached(self, node: Tag) -> bool:
        """Drop ``node`` if it is no longer reachable; return True if dropped."""
        if not self.is_registered(node) or self.document.contains(node):
            return False
        del self._nodes[id(node)]
        control = self._controls.pop(id(node), None)
        if control is not None:
            self._remove_control(control)
        logger.debug("Unregistered detached diagram (%d remaining)", len(self._nodes))
        return True

    def cleanup(self) -> int:
        """Prune detached nodes and orphaned controls; return nodes dropped."""
        dropped = sum(1 for node in self if self.unregister_if_detached(node))
        for control in self.document.select(f".{EXPORT_BUTTON_CLASS}"):
            owner = find_owner(control)
            if owner is None or not self.document.contains(owner):
                self._remove_control(control)
        return dropped

    def clear(self) -> None:
        self._nodes.clear()
        self._controls.clear()

    def _remove_control(self, control: Tag) -> None:
        container = control.parent
        self.document.remove(control)
        # A synthesized container with nothing left in it goes too.
        if (
            container is not None
            and has_class(container, EXPORT_CONTAINER_CLASS)
            and not container.find(True)
        ):
            self.document.remove(container)
