"""SVG normalization for exported artifacts."""

import logging
import re
import xml.etree.ElementTree as ET
from typing import Optional

from .models import RenderedArtifact

logger = logging.getLogger(__name__)

SVG_NS = "http://www.w3.org/2000/svg"
XLINK_NS = "http://www.w3.org/1999/xlink"

_SVG_TAG = f"{{{SVG_NS}}}"
_XLINK_ATTR = f"{{{XLINK_NS}}}"


def parse_length(value: Optional[str]) -> Optional[float]:
    """Parse an absolute SVG length ("120", "120px", "90pt"); None for percentages."""
    if not value:
        return None
    match = re.fullmatch(r"\s*(\d+(?:\.\d+)?)\s*(px|pt)?\s*", value)
    if not match:
        return None
    return float(match.group(1))


def parse_view_box(value: Optional[str]) -> Optional[tuple[float, float, float, float]]:
    if not value:
        return None
    parts = [part for part in re.split(r"[\s,]+", value.strip()) if part]
    if len(parts) < 4:
        return None
    try:
        min_x, min_y, width, height = (float(part) for part in parts[:4])
    except ValueError:
        return None
    return min_x, min_y, width, height


def format_number(value: float) -> str:
    """Render 400.0 as "400" and 12.5 as "12.5"."""
    return f"{value:g}"


def _serialize(root: ET.Element) -> str:
    """Write SVG as the default namespace with an ``xlink`` prefix.

    Names are rewritten on the tree itself; ElementTree's process-wide
    prefix registry is never touched.
    """
    for element in root.iter():
        if isinstance(element.tag, str) and element.tag.startswith(_SVG_TAG):
            element.tag = element.tag[len(_SVG_TAG):]
        for key in [key for key in element.keys() if key.startswith(_XLINK_ATTR)]:
            element.set(f"xlink:{key[len(_XLINK_ATTR):]}", element.attrib.pop(key))
    root.set("xmlns", SVG_NS)
    root.set("xmlns:xlink", XLINK_NS)
    return ET.tostring(root, encoding="unicode")


def normalize_svg(markup: str) -> RenderedArtifact:
    """Make the markup self-describing and scalable.

    Adds a viewBox from explicit width/height when missing and makes sure the
    SVG and XLink namespaces are declared. Unparseable markup is returned
    unchanged.
    """
    try:
        root = ET.fromstring(markup)
    except ET.ParseError as exc:
        logger.warning("SVG parsing failed (%s); using original content", exc)
        return RenderedArtifact(markup=markup)

    width = parse_length(root.get("width"))
    height = parse_length(root.get("height"))
    view_box = parse_view_box(root.get("viewBox"))
    if view_box is None and width is not None and height is not None:
        view_box = (0.0, 0.0, width, height)
        root.set("viewBox", " ".join(format_number(v) for v in view_box))

    return RenderedArtifact(markup=_serialize(root), width=width, height=height, view_box=view_box)
