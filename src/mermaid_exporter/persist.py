"""Filenames and output destinations."""

import asyncio
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Protocol

from .errors import PersistenceError
from .host import HostDocument, Notifier
from .models import Destination, ExportFormat, ExportSettings, PersistResult

logger = logging.getLogger(__name__)

DEFAULT_NOTE_NAME = "mermaid-diagram"
REVOKE_DELAY = 0.1


class Vault(Protocol):
    async def exists(self, path: str) -> bool: ...

    async def create_folder(self, path: str) -> None: ...

    async def write_binary(self, path: str, data: bytes) -> None: ...


def generate_filename(
    template: str,
    fmt: ExportFormat,
    note_name: Optional[str] = None,
    now: Optional[datetime] = None,
) -> str:
    """Fill ``{noteName}``, ``{timestamp}``, ``{date}`` and ``{time}``.

    ``timestamp`` and ``date`` are UTC, ``time`` is local wall-clock time.
    The format's extension is appended unless the template already ends in it.
    """
    now = now or datetime.now().astimezone()
    if now.tzinfo is None:
        now = now.astimezone()
    utc = now.astimezone(timezone.utc)

    filename = template
    filename = filename.replace("{noteName}", note_name or DEFAULT_NOTE_NAME)
    filename = filename.replace("{timestamp}", utc.strftime("%Y-%m-%dT%H-%M-%S"))
    filename = filename.replace("{date}", utc.strftime("%Y-%m-%d"))
    filename = filename.replace("{time}", now.astimezone().strftime("%H-%M-%S"))

    if not filename.endswith(f".{fmt.extension}"):
        filename += f".{fmt.extension}"
    return filename


def normalize_folder(path: str) -> str:
    """Strip surrounding slashes and end with exactly one."""
    folder = path.strip().strip("/")
    return f"{folder}/" if folder else ""


class Persister:
    """Writes to the configured vault folder, falling back to a download."""

    def __init__(
        self,
        document: HostDocument,
        notifier: Notifier,
        vault: Optional[Vault] = None,
        revoke_delay: float = REVOKE_DELAY,
    ) -> None:
        self.document = document
        self.notifier = notifier
        self.vault = vault
        self.revoke_delay = revoke_delay

    async def save(self, data: bytes, filename: str, settings: ExportSettings) -> PersistResult:
        location = settings.default_export_location
        if location and self.vault is not None:
            try:
                path = await self.save_to_vault(data, filename, location)
                return PersistResult(filename, Path(path), Destination.VAULT)
            except Exception as exc:
                logger.warning("Failed to save to vault, falling back to download: %s", exc)
                self.notifier.show("Could not save to vault location, using browser download instead", 3000)

        try:
            path = self.download(data, filename, settings.export_format.mime_type)
        except Exception as exc:
            logger.error("Download error: %s", exc)
            raise PersistenceError(f"Failed to download file: {exc}") from exc
        return PersistResult(filename, path, Destination.DOWNLOAD)

    async def save_to_vault(self, data: bytes, filename: str, location: str) -> str:
        folder = normalize_folder(location)
        full_path = folder + filename
        vault = self.vault

        if folder and not await vault.exists(folder):
            try:
                await vault.create_folder(folder)
            except Exception:
                # Folder creation is not recursive; build the path top-down.
                current = ""
                for part in (p for p in folder.split("/") if p):
                    current = f"{current}/{part}" if current else part
                    if not await vault.exists(current):
                        await vault.create_folder(current)

        await vault.write_binary(full_path, data)
        logger.info("Saved %s to vault", full_path)
        return full_path

    def download(self, data: bytes, filename: str, mime_type: str) -> Path:
        document = self.document
        url = document.create_object_url(data, mime_type)
        link = document.create_element("a", {"href": url, "download": filename})
        document.set_style(link, display="none")
        document.append(document.body, link)
        try:
            path = document.click(link)
        except Exception:
            document.remove(link)
            document.revoke_object_url(url)
            raise

        def release() -> None:
            document.remove(link)
            document.revoke_object_url(url)

        asyncio.get_running_loop().call_later(self.revoke_delay, release)
        return path
