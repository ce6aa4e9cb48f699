"""Wires detection, controls and export together for one host document."""

import logging
from functools import partial
from typing import Optional

from bs4 import Tag

from .anchors import AnchorResolver
from .dom import EXPORT_BUTTON_CLASS, EXPORT_CONTAINER_CLASS, describe
from .exporter import DiagramExporter
from .extractor import SourceExtractor
from .host import HostDocument, NoteEditor, Notifier
from .locator import DiagramLocator
from .models import ExportResult, ExportSettings
from .persist import Persister, Vault
from .raster import CairoSurface, RasterSurface
from .registry import DiagramRegistry
from .render import MermaidCliEngine, RenderEngine, RenderOrchestrator
from .watcher import HOVER_RESCAN_DELAY, RESCAN_DELAY, ChangeWatcher

logger = logging.getLogger(__name__)

ANCHOR_RETRY_DELAY = 0.5  # Hosts may add their block controls late


class MermaidExporterPlugin:
    """Keeps one export control next to every Mermaid diagram in a document."""

    def __init__(
        self,
        document: HostDocument,
        settings: Optional[ExportSettings] = None,
        engine: Optional[RenderEngine] = None,
        vault: Optional[Vault] = None,
        editor: Optional[NoteEditor] = None,
        notifier: Optional[Notifier] = None,
        surface: Optional[RasterSurface] = None,
        rescan_delay: float = RESCAN_DELAY,
        hover_delay: float = HOVER_RESCAN_DELAY,
        retry_delay: float = ANCHOR_RETRY_DELAY,
        render_timeout: Optional[float] = None,
    ) -> None:
        self.document = document
        self.settings = settings or ExportSettings()
        self.notifier = notifier or Notifier()
        self.retry_delay = retry_delay

        self.registry = DiagramRegistry(document)
        self.locator = DiagramLocator(self.registry)
        self.anchors = AnchorResolver(document)
        self.watcher = ChangeWatcher(
            document,
            rescan=self.process_existing_diagrams,
            cleanup=self.registry.cleanup,
            rescan_delay=rescan_delay,
            hover_delay=hover_delay,
        )
        self.exporter = DiagramExporter(
            settings=lambda: self.settings,
            extractor=SourceExtractor(document.root, editor),
            orchestrator=RenderOrchestrator(document, engine or MermaidCliEngine(), timeout=render_timeout),
            persister=Persister(document, self.notifier, vault),
            surface=surface or CairoSurface(),
            notifier=self.notifier,
            editor=editor,
        )

    def load(self) -> None:
        """Attach controls to existing diagrams and start watching.

        Must be called from inside a running event loop.
        """
        self.process_existing_diagrams()
        self.watcher.start()
        logger.info("Mermaid Exporter plugin loaded")

    def unload(self) -> None:
        self.watcher.stop()
        for element in self.document.select(f".{EXPORT_BUTTON_CLASS}, .{EXPORT_CONTAINER_CLASS}"):
            self.document.remove(element)
        self.registry.clear()
        logger.info("Mermaid Exporter plugin unloaded")

    def process_existing_diagrams(self) -> int:
        """Scan once; return the number of newly registered diagrams."""
        before = len(self.registry)
        for node in self.locator.locate(self.document.root):
            if not self._attach(node):
                self.watcher.schedule(self.retry_delay, partial(self._retry, node))
        registered = len(self.registry) - before
        if registered:
            logger.debug("Registered %d diagram(s), %d total", registered, len(self.registry))
        return registered

    def _attach(self, node: Tag) -> bool:
        """Place a control for ``node``; False if no anchor was found.

        An anchor already covered by another node's control leaves ``node``
        unregistered so a later scan can claim the anchor once it is free.
        """
        anchor = self.anchors.resolve(node)
        if anchor is None:
            return False
        control = self.anchors.attach(anchor, partial(self.exporter.export, node))
        if control is None:
            return True
        self.registry.register(node, control)
        return True

    def _retry(self, node: Tag) -> None:
        if self.registry.is_registered(node) or not self.document.contains(node):
            return
        if not self._attach(node):
            logger.warning("Could not find action bar for element: %s", describe(node))

    def controls(self) -> list[Tag]:
        return self.document.select(f".{EXPORT_BUTTON_CLASS}")

    async def export(self, node: Tag) -> ExportResult:
        return await self.exporter.export(node)
