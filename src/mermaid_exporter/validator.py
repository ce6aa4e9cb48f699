"""Keyword sniffing for Mermaid source."""

from typing import Optional

from .errors import DiagramValidationError

# Lower-cased diagram type keywords
DIAGRAM_KEYWORDS = (
    "graph",
    "flowchart",
    "sequencediagram",
    "classdiagram",
    "statediagram",
    "erdiagram",
    "timeline",
    "pie",
    "journey",
    "requirement",
    "c4context",
    "c4container",
    "c4component",
    "mindmap",
    "quadrantchart",
    "gantt",
    "gitgraph",
    "sankey-beta",
)


def is_valid(text: Optional[str]) -> bool:
    """True if the text mentions at least one diagram type keyword."""
    if not text:
        return False
    lowered = text.strip().lower()
    if not lowered:
        return False
    return any(keyword in lowered for keyword in DIAGRAM_KEYWORDS)


def ensure_valid(text: Optional[str]) -> str:
    """Return the trimmed text, or raise if it does not look like a diagram."""
    if not is_valid(text):
        raise DiagramValidationError("Recovered text is not Mermaid source")
    return text.strip()
