"""Host services: the live document tree, storage, editor and notices.

``HostDocument`` plays the part of the rendered view. It is the only writer
of the tree; every insertion or removal is queued and delivered to
observers as one ``MutationBatch`` on the next event-loop turn.
"""

import asyncio
import logging
import re
import uuid
from pathlib import Path
from typing import Any, Callable, Optional

from bs4 import BeautifulSoup, Tag

from .dom import is_attached
from .models import MutationBatch

logger = logging.getLogger(__name__)

FRAME_INTERVAL = 1 / 60  # Seconds per animation frame
DEFAULT_DOWNLOAD_DIR = Path.home() / "Downloads"
EMPTY_DOCUMENT = "<html><head></head><body></body></html>"


class Subscription:
    """Handle returned by ``observe``/``on_pointer_over``."""

    def __init__(self, listeners: list, callback: Callable) -> None:
        self._listeners = listeners
        self._callback = callback

    def disconnect(self) -> None:
        if self._callback in self._listeners:
            self._listeners.remove(self._callback)


class HostDocument:
    """A mutable HTML tree with observer, pointer, click and blob services."""

    def __init__(self, html: str = "", download_dir: Optional[Path] = None) -> None:
        self.soup = BeautifulSoup(html or EMPTY_DOCUMENT, "html.parser")
        if self.soup.body is None:
            body = self.soup.new_tag("body")
            container = self.soup.html or self.soup
            for child in list(container.contents):
                if getattr(child, "name", None) != "head":
                    body.append(child.extract())
            container.append(body)
        self.download_dir = Path(download_dir) if download_dir else DEFAULT_DOWNLOAD_DIR
        self.downloads: list[Path] = []

        self._observers: list[Callable[[MutationBatch], None]] = []
        self._pointer_listeners: list[Callable[[Tag], None]] = []
        self._pending = MutationBatch()
        self._flush_scheduled = False
        self._click_handlers: dict[int, tuple[Tag, Callable[[], Any]]] = {}
        self._object_urls: dict[str, tuple[bytes, str]] = {}

    # Tree access

    @property
    def root(self) -> BeautifulSoup:
        return self.soup

    @property
    def body(self) -> Tag:
        return self.soup.body

    def select(self, selector: str) -> list[Tag]:
        return self.soup.select(selector)

    def select_one(self, selector: str) -> Optional[Tag]:
        return self.soup.select_one(selector)

    def contains(self, node: Tag) -> bool:
        return is_attached(node, self.soup)

    def create_element(self, name: str, attrs: Optional[dict] = None, html: str = "") -> Tag:
        element = self.soup.new_tag(name, attrs=attrs or {})
        if html:
            fragment = BeautifulSoup(html, "html.parser")
            for child in list(fragment.contents):
                element.append(child.extract())
        return element

    # Tree mutation

    def append(self, parent: Tag, child: Tag) -> Tag:
        parent.append(child)
        self._record(added=child)
        return child

    def prepend(self, parent: Tag, child: Tag) -> Tag:
        parent.insert(0, child)
        self._record(added=child)
        return child

    def insert_before(self, reference: Tag, child: Tag) -> Tag:
        reference.insert_before(child)
        self._record(added=child)
        return child

    def insert_after(self, reference: Tag, child: Tag) -> Tag:
        reference.insert_after(child)
        self._record(added=child)
        return child

    def remove(self, node: Tag) -> None:
        if node.parent is None:
            return
        node.extract()
        for element in [node, *node.find_all(True)]:
            self._click_handlers.pop(id(element), None)
        self._record(removed=node)

    def set_style(self, element: Tag, **properties: str) -> None:
        """Merge CSS properties into the element's inline style."""
        declarations = _parse_style(element.get("style", ""))
        declarations.update({name.replace("_", "-"): value for name, value in properties.items()})
        element["style"] = "; ".join(f"{name}: {value}" for name, value in declarations.items())

    def layout(self, element: Tag) -> tuple[float, float]:
        """Read the element's laid-out width and height from its inline style."""
        declarations = _parse_style(element.get("style", ""))
        return _parse_px(declarations.get("width")), _parse_px(declarations.get("height"))

    async def next_frame(self) -> None:
        await asyncio.sleep(FRAME_INTERVAL)

    # Observation

    def observe(self, callback: Callable[[MutationBatch], None]) -> Subscription:
        self._observers.append(callback)
        return Subscription(self._observers, callback)

    def on_pointer_over(self, callback: Callable[[Tag], None]) -> Subscription:
        self._pointer_listeners.append(callback)
        return Subscription(self._pointer_listeners, callback)

    def pointer_over(self, target: Tag) -> None:
        for listener in list(self._pointer_listeners):
            listener(target)

    def flush_mutations(self) -> None:
        """Deliver queued mutation records now."""
        self._flush_scheduled = False
        batch, self._pending = self._pending, MutationBatch()
        if not batch.added and not batch.removed:
            return
        for observer in list(self._observers):
            observer(batch)

    def _record(self, added: Optional[Tag] = None, removed: Optional[Tag] = None) -> None:
        if added is not None:
            self._pending.added.append(added)
        if removed is not None:
            self._pending.removed.append(removed)
        if self._flush_scheduled:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # No loop yet; records wait for the next explicit flush.
            return
        self._flush_scheduled = True
        loop.call_soon(self.flush_mutations)

    # Events

    def on_click(self, element: Tag, handler: Callable[[], Any]) -> None:
        self._click_handlers[id(element)] = (element, handler)

    def click(self, element: Tag) -> Any:
        """Dispatch a click to the nearest handler, or run the default action."""
        for node in [element, *element.parents]:
            registered = self._click_handlers.get(id(node))
            if registered is not None and registered[0] is node:
                result = registered[1]()
                if asyncio.iscoroutine(result):
                    return asyncio.ensure_future(result)
                return result
        if element.name == "a" and element.has_attr("download"):
            return self._download(element)
        return None

    # Blobs and downloads

    def create_object_url(self, data: bytes, mime_type: str) -> str:
        url = f"blob:mermaid-exporter/{uuid.uuid4()}"
        self._object_urls[url] = (data, mime_type)
        return url

    def revoke_object_url(self, url: str) -> None:
        self._object_urls.pop(url, None)

    def _download(self, link: Tag) -> Path:
        href = link.get("href", "")
        if href not in self._object_urls:
            raise FileNotFoundError(f"Object URL is not live: {href}")
        data, _ = self._object_urls[href]
        self.download_dir.mkdir(parents=True, exist_ok=True)
        target = _unique_path(self.download_dir / (link.get("download") or "download"))
        target.write_bytes(data)
        self.downloads.append(target)
        logger.debug("Downloaded %d bytes to %s", len(data), target)
        return target


def _parse_style(style: str) -> dict[str, str]:
    declarations = {}
    for declaration in style.split(";"):
        if ":" in declaration:
            name, value = declaration.split(":", 1)
            declarations[name.strip()] = value.strip()
    return declarations


def _parse_px(value: Optional[str]) -> float:
    match = re.match(r"\s*(-?\d+(?:\.\d+)?)", value or "")
    return float(match.group(1)) if match else 0.0


def _unique_path(path: Path) -> Path:
    """Append ``" (n)"`` before the suffix until the name is free."""
    candidate = path
    counter = 1
    while candidate.exists():
        candidate = path.with_name(f"{path.stem} ({counter}){path.suffix}")
        counter += 1
    return candidate


class Notice:
    """A transient status message."""

    def __init__(self, message: str, timeout: int) -> None:
        self.message = message
        self.timeout = timeout  # Milliseconds; 0 stays until hidden
        self.visible = True

    def hide(self) -> None:
        self.visible = False


class Notifier:
    """Shows notices and keeps them for inspection."""

    def __init__(self, echo: Optional[Callable[[str], None]] = None) -> None:
        self.notices: list[Notice] = []
        self._echo = echo

    @property
    def messages(self) -> list[str]:
        return [notice.message for notice in self.notices]

    def show(self, message: str, timeout: int = 5000) -> Notice:
        notice = Notice(message, timeout)
        self.notices.append(notice)
        logger.info("Notice: %s", message)
        if self._echo is not None:
            self._echo(message)
        return notice


class LocalVault:
    """Vault-relative file storage rooted at a directory.

    Mirrors the host storage API: folder creation is not recursive and
    writing never overwrites an existing file.
    """

    def __init__(self, root: Path) -> None:
        self.root = Path(root)

    def resolve(self, path: str) -> Path:
        parts = [part for part in path.replace("\\", "/").split("/") if part and part != "."]
        if ".." in parts:
            raise ValueError(f"Path escapes the vault: {path}")
        return self.root.joinpath(*parts)

    async def exists(self, path: str) -> bool:
        return self.resolve(path).exists()

    async def create_folder(self, path: str) -> None:
        target = self.resolve(path)
        if target.exists():
            raise FileExistsError(f"Folder already exists: {path}")
        target.mkdir()

    async def write_binary(self, path: str, data: bytes) -> None:
        target = self.resolve(path)
        if target.exists():
            raise FileExistsError(f"File already exists: {path}")
        if not target.parent.is_dir():
            raise FileNotFoundError(f"Folder does not exist: {target.parent}")
        target.write_bytes(data)


class NoteEditor:
    """The active note: raw text and display name."""

    def __init__(self, text: str, name: Optional[str] = None) -> None:
        self.text = text
        self.name = name

    def get_value(self) -> str:
        return self.text

    def note_name(self) -> Optional[str]:
        return self.name
