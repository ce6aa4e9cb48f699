"""Loading and saving stored preferences."""

import logging
from pathlib import Path

from .models import ExportSettings

logger = logging.getLogger(__name__)

SETTINGS_FILE_NAME = ".mermaid-exporter.json"


def load_settings(path: Path) -> ExportSettings:
    """Stored values over defaults; a missing or empty file means defaults."""
    if not path.exists():
        return ExportSettings()
    raw = path.read_text(encoding="utf-8").strip()
    if not raw:
        return ExportSettings()
    settings = ExportSettings.model_validate_json(raw)
    logger.debug("Loaded settings from %s", path)
    return settings


def save_settings(settings: ExportSettings, path: Path) -> None:
    path.write_text(settings.model_dump_json(by_alias=True, indent=2), encoding="utf-8")
