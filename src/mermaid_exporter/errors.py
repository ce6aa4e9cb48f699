"""Failure taxonomy for diagram exports."""


class ExportError(Exception):
    """Base class for failures caught at the export operation boundary."""

    category = "export"
    notice = "Export failed: {detail}"

    def notice_text(self) -> str:
        """Text shown to the user for this failure."""
        return self.notice.format(detail=str(self) or self.category)


class ExtractionError(ExportError):
    """No strategy recovered diagram source for the node."""

    category = "extraction"
    notice = "Error: Could not find Mermaid diagram source code"


class DiagramValidationError(ExportError):
    """Recovered text is not recognizable diagram source."""

    category = "validation"
    notice = "Error: Invalid Mermaid diagram code"


class RenderError(ExportError):
    """The rendering engine failed or produced nothing."""

    category = "render"
    notice = "Error: Failed to render Mermaid diagram"


class ConversionError(ExportError):
    """The vector artifact could not be rasterized."""

    category = "conversion"
    notice = "Error: Failed to convert diagram ({detail})"


class PersistenceError(ExportError):
    """Neither destination accepted the exported file."""

    category = "persistence"
