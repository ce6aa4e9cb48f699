"""Mermaid exporter - export Mermaid diagrams from a rendered note as SVG, PNG or JPEG."""

from .host import HostDocument, LocalVault, NoteEditor, Notifier
from .models import ExportFormat, ExportResult, ExportSettings, QualityTier
from .plugin import MermaidExporterPlugin
from .validator import is_valid

__version__ = "0.1.0"

__all__ = [
    "ExportFormat",
    "ExportResult",
    "ExportSettings",
    "HostDocument",
    "LocalVault",
    "MermaidExporterPlugin",
    "NoteEditor",
    "Notifier",
    "QualityTier",
    "is_valid",
]
