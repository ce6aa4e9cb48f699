"""Tests for diagram source recovery."""

from typing import Optional

from mermaid_exporter.extractor import SourceExtractor
from mermaid_exporter.host import HostDocument, NoteEditor


def _extract(html: str, selector: str, editor: Optional[NoteEditor] = None):
    document = HostDocument(html)
    node = document.select_one(selector)
    return SourceExtractor(document.root, editor).extract(node)


def test_preview_block_nested_code() -> None:
    """Test that a preview block's own code element wins."""
    source = _extract(
        '<body><div class="cm-preview-code-block cm-lang-mermaid">'
        '<code class="language-mermaid">graph TD\nA--&gt;B</code></div></body>',
        ".cm-preview-code-block",
        NoteEditor("```mermaid\npie\n\"x\": 1\n```"),
    )
    assert source.text == "graph TD\nA-->B"
    assert source.strategy == "from_preview_block"
    assert source.rank == 0


def test_preview_block_data_attribute() -> None:
    """Test that a preview block's data attribute carries the source."""
    source = _extract(
        '<body><div class="cm-preview-code-block cm-lang-mermaid" data-code="journey\n  title Day">'
        '<div class="mermaid"><svg id="mermaid-1"></svg></div></div></body>',
        ".cm-preview-code-block",
    )
    assert source.text == "journey\n  title Day"
    assert source.strategy == "from_preview_block"


def test_nested_code() -> None:
    """Test source held by a descendant code element."""
    source = _extract(
        '<body><div class="code-block"><code class="language-mermaid">gantt\n  title Plan</code></div></body>',
        ".code-block",
    )
    assert source.text == "gantt\n  title Plan"
    assert source.strategy == "from_nested_code"


def test_enclosing_pre() -> None:
    """Test that a node inside a pre reads the pre's code."""
    source = _extract(
        '<body><pre><code class="language-mermaid">\n  erDiagram\n  A ||--o{ B : has\n</code></pre></body>',
        "code",
    )
    assert source.text == "erDiagram\n  A ||--o{ B : has"
    assert source.strategy == "from_enclosing_pre"


def test_node_itself_is_not_validated() -> None:
    """Test that the node's own text is taken even if it is not a diagram."""
    source = _extract('<body><pre><code class="language-mermaid">hello</code></pre></body>', "code")
    assert source.text == "hello"
    assert source.strategy == "from_node_itself"


def test_rendered_svg_container() -> None:
    """Test reading the source kept next to a rendered diagram."""
    source = _extract(
        '<body><div class="code-block"><code class="language-mermaid" style="display: none">'
        "mindmap\n  root</code>"
        '<div class="mermaid"><svg id="mermaid-1"></svg></div></div></body>',
        "div.mermaid",
    )
    assert source.text == "mindmap\n  root"
    assert source.strategy == "from_rendered_svg"


def test_editor_text() -> None:
    """Test the raw note as a fallback."""
    editor = NoteEditor("# Note\n\n```mermaid\nsequenceDiagram\n  A->>B: hi\n```\n")
    source = _extract('<body><div class="mermaid"><svg id="mermaid-1"></svg></div></body>', "div.mermaid", editor)
    assert source.text == "sequenceDiagram\n  A->>B: hi"
    assert source.strategy == "from_editor_text"


def test_editor_text_skips_invalid_fences() -> None:
    """Test that the first fence that looks like a diagram is used."""
    editor = NoteEditor("```mermaid\nhello\n```\n\n```mermaid\ngraph LR\nx-->y\n```\n")
    source = _extract('<body><div class="mermaid"><svg id="mermaid-1"></svg></div></body>', "div.mermaid", editor)
    assert source.text == "graph LR\nx-->y"


class _BrokenEditor(NoteEditor):
    def get_value(self) -> str:
        raise RuntimeError("editor detached")


def test_broken_editor_is_skipped() -> None:
    """Test that editor failures fall through to the next strategy."""
    source = _extract(
        '<body><div class="mermaid"><svg id="mermaid-1"></svg></div></body>',
        "div.mermaid",
        _BrokenEditor(""),
    )
    assert source is None


def test_document_code_in_same_wrapper() -> None:
    """Test a document-wide search limited to the node's own wrapper."""
    html = (
        '<body><div class="code-block"><code class="language-mermaid">timeline\n  2024 : start</code></div>'
        '<div class="code-block"><code class="language-mermaid">graph TD\nA--&gt;B</code>'
        '<span class="diagram"></span></div>'
        '<div class="code-block"><span class="lonely"></span></div></body>'
    )
    source = _extract(html, "span.diagram")
    assert source.text == "graph TD\nA-->B"
    assert source.strategy == "from_document"

    assert _extract(html, "span.lonely") is None


def test_extraction_is_repeatable() -> None:
    """Test that extracting twice gives the same answer."""
    document = HostDocument('<body><pre><code class="language-mermaid">pie\n"a": 1</code></pre></body>')
    extractor = SourceExtractor(document.root)
    node = document.select_one("code")
    assert extractor.extract(node) == extractor.extract(node)


def test_nothing_found() -> None:
    """Test that an unrelated node yields no source."""
    assert _extract("<body><p>nothing here</p></body>", "p") is None
