"""Data models for Mermaid diagram export."""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Optional

from bs4 import Tag
from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_FILENAME_FORMAT = "{noteName}-{timestamp}"


class QualityTier(str, Enum):
    """Export resolution tiers."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    MAXIMUM = "maximum"

    @property
    def scale(self) -> float:
        """Linear multiplier applied to raster dimensions."""
        return _QUALITY_SCALE[self]


_QUALITY_SCALE = {
    QualityTier.LOW: 1.0,
    QualityTier.MEDIUM: 1.5,
    QualityTier.HIGH: 2.0,
    QualityTier.MAXIMUM: 3.0,
}


class ExportFormat(str, Enum):
    """Output file formats."""

    SVG = "svg"  # Vector, written as normalized markup
    PNG = "png"  # Lossless raster
    JPEG = "jpeg"  # Lossy raster, fixed quality

    @property
    def extension(self) -> str:
        return self.value

    @property
    def mime_type(self) -> str:
        if self is ExportFormat.SVG:
            return "image/svg+xml;charset=utf-8"
        return f"image/{self.value}"

    @property
    def is_raster(self) -> bool:
        return self is not ExportFormat.SVG


class ExportSettings(BaseModel):
    """User preferences, stored under the host's camelCase keys."""

    model_config = ConfigDict(populate_by_name=True)

    export_quality: QualityTier = Field(QualityTier.HIGH, alias="exportQuality")
    export_format: ExportFormat = Field(ExportFormat.SVG, alias="exportFormat")
    default_export_location: str = Field("", alias="defaultExportLocation")
    filename_format: str = Field(DEFAULT_FILENAME_FORMAT, alias="filenameFormat")

    @field_validator("export_quality", mode="before")
    @classmethod
    def _known_quality(cls, value: Any) -> Any:
        if isinstance(value, QualityTier):
            return value
        if not isinstance(value, str) or value not in {tier.value for tier in QualityTier}:
            return QualityTier.HIGH
        return value

    @field_validator("export_format", mode="before")
    @classmethod
    def _known_format(cls, value: Any) -> Any:
        if isinstance(value, ExportFormat):
            return value
        if not isinstance(value, str) or value not in {fmt.value for fmt in ExportFormat}:
            return ExportFormat.SVG
        return value

    @field_validator("default_export_location", mode="before")
    @classmethod
    def _trim_location(cls, value: Any) -> str:
        return (value or "").strip()

    @field_validator("filename_format", mode="before")
    @classmethod
    def _trim_template(cls, value: Any) -> str:
        return (value or "").strip() or DEFAULT_FILENAME_FORMAT


# Pipeline data structures


@dataclass
class MutationBatch:
    """Tree changes delivered together in one observer callback."""

    added: list[Tag] = field(default_factory=list)
    removed: list[Tag] = field(default_factory=list)


@dataclass
class DiagramSource:
    """Recovered diagram text and the strategy that produced it."""

    text: str
    strategy: str  # Name of the extraction strategy
    rank: int  # Position in the fallback chain (0 = most trusted)


@dataclass
class RenderedArtifact:
    """Normalized vector markup for one diagram."""

    markup: str
    width: Optional[float] = None
    height: Optional[float] = None
    view_box: Optional[tuple[float, float, float, float]] = None


class Destination(str, Enum):
    """Where an export ended up."""

    VAULT = "vault"
    DOWNLOAD = "download"


@dataclass
class PersistResult:
    filename: str
    path: Path
    destination: Destination


class ExportStage(Enum):
    """Steps of one export operation."""

    PENDING = "pending"
    EXTRACTING = "extracting"
    VALIDATING = "validating"
    RENDERING = "rendering"
    NORMALIZING = "normalizing"
    CONVERTING = "converting"
    PERSISTING = "persisting"
    DONE = "done"
    FAILED = "failed"


@dataclass
class ExportOperation:
    """State of a single click-to-file export."""

    node: Tag
    settings: ExportSettings
    stage: ExportStage = ExportStage.PENDING
    source: Optional[DiagramSource] = None
    artifact: Optional[RenderedArtifact] = None
    filename: Optional[str] = None
    stages: list[ExportStage] = field(default_factory=list)  # Visited stages, in order

    def advance(self, stage: ExportStage) -> None:
        self.stage = stage
        self.stages.append(stage)


@dataclass
class ExportResult:
    """Outcome reported for one export operation."""

    ok: bool
    filename: Optional[str] = None
    path: Optional[Path] = None
    destination: Optional[Destination] = None
    failure: Optional[str] = None  # ExportError category on failure
    stages: list[ExportStage] = field(default_factory=list)
