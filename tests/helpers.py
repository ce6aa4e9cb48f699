"""Shared test helpers: fake host services and page builders."""

import html
from typing import Optional

from mermaid_exporter.host import HostDocument
from mermaid_exporter.models import ExportFormat

SAMPLE_SVG = (
    '<svg xmlns="http://www.w3.org/2000/svg" width="400" height="300">'
    '<rect x="0" y="0" width="400" height="300" fill="white" />'
    "</svg>"
)


def code_block(source: str) -> str:
    """A fenced mermaid block as a reading view renders it."""
    return f'<pre><code class="language-mermaid">{html.escape(source)}</code></pre>'


def preview_block(edit: bool = True, data_code: Optional[str] = None) -> str:
    """A live-preview block holding a rendered diagram."""
    attrs = f' data-code="{html.escape(data_code)}"' if data_code else ""
    edit_html = '<div class="edit-block-button" aria-label="Edit this block"></div>' if edit else ""
    return (
        f'<div class="cm-preview-code-block cm-embed-block cm-lang-mermaid"{attrs}>'
        '<div class="mermaid"><svg id="mermaid-1"><g></g></svg></div>'
        f"{edit_html}</div>"
    )


def page(*blocks: str) -> str:
    return (
        '<html><body><div class="markdown-preview-view"><div class="markdown-preview-section">'
        + "".join(blocks)
        + "</div></div></body></html>"
    )


class FakeEngine:
    """Records calls and checks the staging container is live."""

    def __init__(self, document: HostDocument, markup: str = SAMPLE_SVG, error: Optional[Exception] = None):
        self.document = document
        self.markup = markup
        self.error = error
        self.calls: list[tuple[str, str]] = []
        self.staged: list[bool] = []

    async def render(self, diagram_id: str, source: str) -> str:
        self.calls.append((diagram_id, source))
        self.staged.append(self.document.select_one(f"#{diagram_id}") is not None)
        if self.error is not None:
            raise self.error
        return self.markup


class FakeSurface:
    def __init__(self) -> None:
        self.draws: list[tuple[int, int, ExportFormat]] = []

    def draw(self, markup: str, width: int, height: int, fmt: ExportFormat) -> bytes:
        self.draws.append((width, height, fmt))
        return f"{fmt.value}:{width}x{height}".encode()


class MemoryVault:
    """In-memory storage with the host's non-recursive folder creation."""

    def __init__(self, fail_write: bool = False) -> None:
        self.folders: set[str] = set()
        self.files: dict[str, bytes] = {}
        self.fail_write = fail_write
        self.created: list[str] = []

    @staticmethod
    def _key(path: str) -> str:
        return path.strip("/")

    async def exists(self, path: str) -> bool:
        key = self._key(path)
        return key in self.folders or key in self.files

    async def create_folder(self, path: str) -> None:
        key = self._key(path)
        parent = key.rpartition("/")[0]
        if parent and parent not in self.folders:
            raise FileNotFoundError(f"Parent folder missing: {parent}")
        self.folders.add(key)
        self.created.append(key)

    async def write_binary(self, path: str, data: bytes) -> None:
        if self.fail_write:
            raise OSError("disk full")
        self.files[self._key(path)] = data
