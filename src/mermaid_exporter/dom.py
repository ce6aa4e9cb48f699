"""Selectors and identity-safe helpers for the host document tree.

bs4 tags compare equal by structure, so two identical diagram blocks are
``==`` to each other. Everything here compares nodes with ``is``.
"""

from typing import Iterable, Optional

from bs4 import BeautifulSoup, Tag

# Diagram markup
MERMAID_CODE = 'code.language-mermaid, code[class*="mermaid"]'
MERMAID_SVG = 'svg.mermaid, .mermaid svg, svg[id^="mermaid"]'
PREVIEW_BLOCK = (
    ".cm-preview-code-block.cm-lang-mermaid, .cm-embed-block.cm-lang-mermaid, "
    '[class*="cm-preview-code-block"][class*="mermaid"]'
)
CODE_CONTAINER = "pre code, .code-block"

# Block wrappers, loosest to strictest
BLOCK_WRAPPER = (
    'pre, .code-block, .cm-preview-code-block, .cm-embed-block, [class*="code"], '
    ".markdown-preview-section"
)
SVG_WRAPPER = 'pre, .code-block, .markdown-preview-section, .cm-preview-code-block, [class*="code"]'
RENDERED_CONTAINER = "pre, .code-block, .markdown-preview-section, .cm-preview-code-block"
CODE_WRAPPER = "pre, .code-block, .cm-preview-code-block"
SYNTH_WRAPPER = "pre, .code-block, .cm-preview-code-block, .cm-embed-block"
BLOCK_CONTAINER_CLASSES = ("code-block-wrapper", "code-block", "cm-preview-code-block", "cm-embed-block")

# Editor views
EDITOR_CONTAINER = ".cm-editor, .markdown-source-view, .markdown-preview-view"
EDITOR_VIEW = ".cm-editor, .markdown-source-view"

# Host controls
EDIT_BUTTON = ".edit-block-button"
EDIT_BUTTON_BY_LABEL = '.edit-block-button[aria-label*="Edit"], div[aria-label="Edit this block"]'
EDIT_CONTROL = (
    '.edit-block-button, button[aria-label*="Edit"], button[title*="Edit"], '
    'a[aria-label*="Edit"], div[aria-label="Edit this block"]'
)
ACTION_BAR = ".code-block-flair, .code-block-actions, .code-block-edit-button"
HOVER_TARGET = "pre, .code-block, code.language-mermaid, .mermaid, svg.mermaid"

# Markup owned by this package
EXPORT_BUTTON_CLASS = "mermaid-export-button"
EXPORT_CONTAINER_CLASS = "mermaid-export-container"
CONTROL_MARKER = "data-mermaid-element"


def class_names(node: Tag) -> list[str]:
    value = node.get("class") or []
    if isinstance(value, str):
        return value.split()
    return list(value)


def has_class(node: Tag, name: str) -> bool:
    return name in class_names(node)


def closest(node: Optional[Tag], selector: str) -> Optional[Tag]:
    """Nearest inclusive ancestor matching ``selector``."""
    if not isinstance(node, Tag) or isinstance(node, BeautifulSoup):
        return None
    return node.css.closest(selector)


def contains(ancestor: Tag, node: Tag) -> bool:
    """True if ``node`` is ``ancestor`` or lies somewhere below it."""
    if node is ancestor:
        return True
    return any(parent is ancestor for parent in node.parents)


def is_attached(node: Tag, root: Tag) -> bool:
    """Reachability predicate for nodes owned by the host."""
    return contains(root, node)


def text_content(node: Tag) -> str:
    return node.get_text()


def unique(nodes: Iterable[Tag]) -> list[Tag]:
    """De-duplicate by identity, keeping first-seen order."""
    seen: set[int] = set()
    result = []
    for node in nodes:
        if id(node) not in seen:
            seen.add(id(node))
            result.append(node)
    return result


def describe(node: Tag) -> str:
    """Short ``tag.class#id`` label for log lines."""
    label = node.name or "?"
    classes = class_names(node)
    if classes:
        label += "." + ".".join(classes)
    if node.get("id"):
        label += f"#{node['id']}"
    return label
