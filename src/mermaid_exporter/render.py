"""Drives the Mermaid engine inside an off-screen staging container."""

import asyncio
import json
import logging
import tempfile
import time
import uuid
from pathlib import Path
from typing import Any, Optional, Protocol

from .errors import RenderError
from .host import HostDocument

logger = logging.getLogger(__name__)

SETTLE_DELAY = 0.05  # After two frames, before calling the engine
STAGING_CLASS = "mermaid-export-staging"

# Labels as SVG text rather than foreignObject, so rasterizers can draw them.
DEFAULT_MERMAID_CONFIG = {
    "theme": "default",
    "securityLevel": "loose",
    "htmlLabels": False,
    "flowchart": {"htmlLabels": False},
}


class RenderEngine(Protocol):
    async def render(self, diagram_id: str, source: str) -> str:
        """Return SVG markup for ``source``."""
        ...


class MermaidCliEngine:
    """Renders through the Mermaid CLI (``mmdc``)."""

    def __init__(
        self,
        executable: str = "mmdc",
        config: Optional[dict[str, Any]] = None,
        background: str = "white",
    ) -> None:
        self.executable = executable
        self.config = DEFAULT_MERMAID_CONFIG if config is None else config
        self.background = background

    async def render(self, diagram_id: str, source: str) -> str:
        with tempfile.TemporaryDirectory(prefix=f"{diagram_id}-") as tmp:
            workdir = Path(tmp)
            input_file = workdir / "diagram.mmd"
            output_file = workdir / "diagram.svg"
            config_file = workdir / "config.json"
            input_file.write_text(source, encoding="utf-8")
            config_file.write_text(json.dumps(self.config), encoding="utf-8")

            cmd = [
                self.executable,
                "-i", str(input_file),
                "-o", str(output_file),
                "-c", str(config_file),
                "-b", self.background,
                "--svgId", diagram_id,
            ]
            logger.debug("Running %s", " ".join(cmd))
            try:
                proc = await asyncio.create_subprocess_exec(
                    *cmd, stdout=asyncio.subprocess.PIPE, stderr=asyncio.subprocess.PIPE
                )
            except FileNotFoundError as exc:
                raise RenderError(
                    f"Mermaid CLI not found ({self.executable}); "
                    "install with: npm install -g @mermaid-js/mermaid-cli"
                ) from exc

            try:
                _, stderr = await proc.communicate()
            except asyncio.CancelledError:
                proc.kill()
                await proc.wait()
                raise

            if proc.returncode != 0:
                detail = stderr.decode("utf-8", errors="replace").strip()
                raise RenderError(f"mmdc exited with {proc.returncode}: {detail[:500]}")
            if not output_file.exists():
                raise RenderError("mmdc produced no output file")
            return output_file.read_text(encoding="utf-8")


def new_diagram_id() -> str:
    """Unique per call so overlapping exports never collide."""
    return f"mermaid-export-{int(time.time() * 1000)}-{uuid.uuid4().hex[:9]}"


class RenderOrchestrator:
    """Runs one engine call with a live staging container in the tree.

    The container is visible to layout but parked off-screen; hiding it
    would break the engine's text measurement. It is removed on every path.
    """

    def __init__(
        self,
        document: HostDocument,
        engine: RenderEngine,
        settle_delay: float = SETTLE_DELAY,
        timeout: Optional[float] = None,
    ) -> None:
        self.document = document
        self.engine = engine
        self.settle_delay = settle_delay
        self.timeout = timeout

    async def render(self, source: str) -> str:
        diagram_id = new_diagram_id()
        document = self.document

        staging = document.create_element("div", {"id": diagram_id, "class": STAGING_CLASS})
        document.set_style(
            staging,
            position="absolute", left="0", top="0", width="2000px", height="2000px",
            overflow="visible", visibility="visible", opacity="1", display="block",
            pointer_events="none", z_index="-9999",
        )
        wrapper = document.create_element("div")
        document.set_style(
            wrapper,
            position="fixed", left="-10000px", top="-10000px", width="2000px", height="2000px",
            overflow="visible", visibility="visible", opacity="1", display="block",
        )
        wrapper.append(staging)
        document.append(document.body, wrapper)

        try:
            await document.next_frame()
            await document.next_frame()
            await asyncio.sleep(self.settle_delay)

            try:
                markup = await asyncio.wait_for(self.engine.render(diagram_id, source), self.timeout)
            except asyncio.TimeoutError as exc:
                raise RenderError(f"Rendering timed out after {self.timeout}s") from exc
            except RenderError:
                raise
            except Exception as exc:
                raise RenderError(str(exc) or type(exc).__name__) from exc

            # Layout read so the engine's measurements have settled.
            document.layout(staging)
            await document.next_frame()
        finally:
            if document.contains(wrapper):
                document.remove(wrapper)

        if not markup or not markup.strip():
            raise RenderError("Rendered SVG is empty")
        logger.debug("Rendered %s (%d chars)", diagram_id, len(markup))
        return markup
