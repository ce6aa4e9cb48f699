"""One click, one file: the export operation pipeline."""

import logging
from typing import Callable, Optional

from bs4 import Tag

from .artifact import normalize_svg
from .dom import describe
from .errors import ExportError, ExtractionError
from .extractor import SourceExtractor
from .host import NoteEditor, Notifier
from .models import ExportOperation, ExportResult, ExportSettings, ExportStage
from .persist import Persister, generate_filename
from .raster import RasterSurface, convert
from .render import RenderOrchestrator
from .validator import ensure_valid

logger = logging.getLogger(__name__)


class DiagramExporter:
    """Runs extract → validate → render → normalize → convert → persist.

    Every failure is caught here and reported as a notice; nothing
    propagates to the caller.
    """

    def __init__(
        self,
        settings: Callable[[], ExportSettings],
        extractor: SourceExtractor,
        orchestrator: RenderOrchestrator,
        persister: Persister,
        surface: RasterSurface,
        notifier: Notifier,
        editor: Optional[NoteEditor] = None,
    ) -> None:
        self.settings = settings
        self.extractor = extractor
        self.orchestrator = orchestrator
        self.persister = persister
        self.surface = surface
        self.notifier = notifier
        self.editor = editor
        self._in_flight: dict[int, Tag] = {}

    def is_exporting(self, node: Tag) -> bool:
        return self._in_flight.get(id(node)) is node

    async def export(self, node: Tag) -> ExportResult:
        if self.is_exporting(node):
            self.notifier.show("An export of this diagram is already running", 3000)
            return ExportResult(ok=False, failure="busy")

        # Snapshot, so preference edits mid-export cannot leak in.
        operation = ExportOperation(node=node, settings=self.settings().model_copy(deep=True))
        self._in_flight[id(node)] = node
        progress = self.notifier.show("Exporting Mermaid diagram...", 0)
        try:
            result = await self._run(operation)
        except ExportError as exc:
            operation.advance(ExportStage.FAILED)
            progress.hide()
            self.notifier.show(exc.notice_text(), 5000)
            logger.error("Export of %s failed (%s): %s", describe(node), exc.category, exc)
            return ExportResult(ok=False, failure=exc.category, stages=operation.stages)
        except Exception as exc:
            operation.advance(ExportStage.FAILED)
            progress.hide()
            self.notifier.show(f"Export failed: {str(exc) or type(exc).__name__}", 5000)
            logger.exception("Export error")
            return ExportResult(ok=False, failure="unexpected", stages=operation.stages)
        finally:
            self._in_flight.pop(id(node), None)

        progress.hide()
        self.notifier.show(f"Successfully exported: {result.filename}", 3000)
        logger.info("Successfully exported diagram: %s", result.filename)
        return result

    async def _run(self, operation: ExportOperation) -> ExportResult:
        settings = operation.settings

        operation.advance(ExportStage.EXTRACTING)
        operation.source = self.extractor.extract(operation.node)
        if operation.source is None:
            raise ExtractionError("No extraction strategy recovered diagram source")

        operation.advance(ExportStage.VALIDATING)
        source_text = ensure_valid(operation.source.text)

        operation.advance(ExportStage.RENDERING)
        markup = await self.orchestrator.render(source_text)

        operation.advance(ExportStage.NORMALIZING)
        operation.artifact = normalize_svg(markup)
        note_name = self.editor.note_name() if self.editor is not None else None
        operation.filename = generate_filename(settings.filename_format, settings.export_format, note_name)

        if settings.export_format.is_raster:
            operation.advance(ExportStage.CONVERTING)
            data = await convert(
                operation.artifact.markup, settings.export_format, settings.export_quality, self.surface
            )
        else:
            data = operation.artifact.markup.encode("utf-8")

        operation.advance(ExportStage.PERSISTING)
        saved = await self.persister.save(data, operation.filename, settings)

        operation.advance(ExportStage.DONE)
        return ExportResult(
            ok=True,
            filename=saved.filename,
            path=saved.path,
            destination=saved.destination,
            stages=operation.stages,
        )
