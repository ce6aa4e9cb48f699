"""Tests for diagram discovery."""

from helpers import code_block, page, preview_block

from mermaid_exporter.host import HostDocument
from mermaid_exporter.locator import (
    DiagramLocator,
    find_keyword_containers,
    find_rendered_svgs,
)
from mermaid_exporter.registry import DiagramRegistry


def _locator(document: HostDocument) -> DiagramLocator:
    return DiagramLocator(DiagramRegistry(document))


def test_finds_each_code_block_once() -> None:
    """Test that N fenced blocks yield exactly N nodes."""
    document = HostDocument(page(*(code_block(f"graph TD\n  A{i}-->B{i}") for i in range(3))))
    nodes = _locator(document).locate(document.root)
    assert len(nodes) == 3
    assert all(node.name == "code" for node in nodes)


def test_identical_blocks_are_distinct() -> None:
    """Test that structurally equal blocks are still separate diagrams."""
    document = HostDocument(page(code_block("graph TD\nA-->B"), code_block("graph TD\nA-->B")))
    nodes = _locator(document).locate(document.root)
    assert len(nodes) == 2
    assert nodes[0] is not nodes[1]


def test_preview_block_and_its_svg_are_one_diagram() -> None:
    """Test that the rendered SVG is lifted to its preview block."""
    document = HostDocument(page(preview_block()))
    nodes = _locator(document).locate(document.root)
    assert len(nodes) == 1
    assert "cm-preview-code-block" in nodes[0]["class"]


def test_rendered_svg_lifted_to_pre() -> None:
    """Test that a bare rendered SVG resolves to its enclosing wrapper."""
    document = HostDocument('<body><pre><div><svg class="mermaid"></svg></div></pre></body>')
    lifted = list(find_rendered_svgs(document.root))
    assert [node.name for node in lifted] == ["pre"]


def test_rendered_svg_without_wrapper_uses_parent() -> None:
    """Test the parent fallback when no wrapper encloses the SVG."""
    document = HostDocument('<body><section><svg id="mermaid-7"></svg></section></body>')
    lifted = list(find_rendered_svgs(document.root))
    assert [node.name for node in lifted] == ["section"]


def test_keyword_container() -> None:
    """Test untagged containers recognized by their opening keyword."""
    document = HostDocument(
        "<body><pre><code>  Flowchart TD\nA--&gt;B</code></pre>"
        "<pre><code>stateDiagram-v2\n[*] --&gt; Idle</code></pre>"
        "<pre><code>print('graph')</code></pre>"
        "<pre><code>pieces of text</code></pre>"
        '<pre><code class="language-python">graph = {}</code></pre></body>'
    )
    found = list(find_keyword_containers(document.root))
    assert [node.get_text().split()[0] for node in found] == ["Flowchart", "stateDiagram-v2"]


def test_untagged_diagram_located() -> None:
    """Test that an untagged fenced diagram is still a diagram."""
    document = HostDocument(page("<pre><code>flowchart TD\nA--&gt;B</code></pre>"))
    nodes = _locator(document).candidates(document.root)
    assert len(nodes) == 1
    assert nodes[0].name == "code"


def test_keyword_container_defers_to_tagged_code() -> None:
    """Test that a wrapper around tagged code is not a second diagram."""
    document = HostDocument(
        '<body><div class="code-block"><code class="language-mermaid">graph TD</code></div></body>'
    )
    assert list(find_keyword_containers(document.root)) == []
    assert len(_locator(document).candidates(document.root)) == 1


def test_skips_registered_nodes() -> None:
    """Test that registered diagrams are not returned again."""
    document = HostDocument(page(code_block("graph TD\nA-->B"), code_block("pie\n\"a\": 1")))
    registry = DiagramRegistry(document)
    locator = DiagramLocator(registry)

    first = locator.locate(document.root)
    registry.register(first[0])

    remaining = locator.locate(document.root)
    assert len(remaining) == 1
    assert remaining[0] is first[1]
    assert len(locator.candidates(document.root)) == 2


def test_ignores_other_languages() -> None:
    """Test that non-mermaid code is not a diagram."""
    document = HostDocument(page('<pre><code class="language-python">graph = {}</code></pre>'))
    assert _locator(document).locate(document.root) == []
