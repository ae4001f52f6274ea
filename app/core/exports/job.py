"""
Batch export: render many resources and package the results into one zip.

The job is a single sequential worker. Cancellation is cooperative and is
checked between resources only; a render already in progress finishes (or
times out) before the next check. A failed render never aborts the run, it
only adds the resource name to ``skipped``. No archive bytes leave the job
unless the run completes with at least one document.

With a render timeout, each render runs on its own daemon thread. A render
that overruns is skipped and its thread is left behind: Python cannot kill
it, but as a daemon it does not hold up interpreter or worker shutdown.
"""
from __future__ import annotations

import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, ClassVar, Iterable, List, Optional, Union

from loguru import logger

from app.core.exports.archive import ArchivePackager
from app.core.exports.bundles import ExportBundle


class RenderTimeoutError(Exception):
    """A single resource took longer than ``render_timeout`` to render."""


class ExportState(str, Enum):
    IDLE = "idle"
    EXPORTING = "exporting"
    CANCELLED = "cancelled"
    COMPLETED_EMPTY = "completed_empty"
    COMPLETED = "completed"
    COMPLETED_WITH_SKIPS = "completed_with_skips"


@dataclass
class ExportProgress:
    current: int
    total: int
    current_name: str


class CancellationToken:
    """One-shot cancel flag shared between the caller and a running job."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    def is_cancelled(self) -> bool:
        return self._event.is_set()


@dataclass
class ExportArchive:
    archive: bytes
    success_count: int
    skipped: List[str] = field(default_factory=list)
    file_names: List[str] = field(default_factory=list)

    @property
    def state(self) -> ExportState:
        if self.skipped:
            return ExportState.COMPLETED_WITH_SKIPS
        return ExportState.COMPLETED


@dataclass
class ExportCancelled:
    state: ClassVar[ExportState] = ExportState.CANCELLED


@dataclass
class ExportEmpty:
    skipped: List[str] = field(default_factory=list)

    state: ClassVar[ExportState] = ExportState.COMPLETED_EMPTY


ExportOutcome = Union[ExportArchive, ExportCancelled, ExportEmpty]

RenderFn = Callable[[ExportBundle, bool], bytes]
ProgressFn = Callable[[ExportProgress], None]


class BatchExportJob:
    def __init__(
        self,
        bundles: Iterable[ExportBundle],
        render: RenderFn,
        *,
        watermark: bool = False,
        token: Optional[CancellationToken] = None,
        on_progress: Optional[ProgressFn] = None,
        render_timeout: Optional[float] = None,
    ) -> None:
        self.bundles = list(bundles)
        self.render = render
        self.watermark = watermark
        self.token = token or CancellationToken()
        self.on_progress = on_progress
        self.render_timeout = render_timeout

        self.state = ExportState.IDLE
        self.progress: Optional[ExportProgress] = None
        self.skipped: List[str] = []
        self.success_count = 0

    def cancel(self) -> None:
        self.token.cancel()

    def run(self) -> ExportOutcome:
        if self.state is not ExportState.IDLE:
            raise RuntimeError("Export job has already been run")
        self.state = ExportState.EXPORTING

        packager = ArchivePackager()
        total = len(self.bundles)
        try:
            for index, bundle in enumerate(self.bundles):
                if self.token.is_cancelled():
                    return self._settle(ExportCancelled())

                self._report(ExportProgress(index + 1, total, bundle.name))
                content = self._render_or_skip(bundle)
                if content is None:
                    continue
                packager.add_document(bundle.name, content)
                self.success_count += 1

            if self.token.is_cancelled():
                return self._settle(ExportCancelled())

            if self.success_count == 0:
                return self._settle(ExportEmpty(skipped=list(self.skipped)))

            file_names = packager.file_names
            return self._settle(
                ExportArchive(
                    archive=packager.finalize(),
                    success_count=self.success_count,
                    skipped=list(self.skipped),
                    file_names=file_names,
                )
            )
        finally:
            packager.discard()
            self.progress = None

    def _report(self, progress: ExportProgress) -> None:
        self.progress = progress
        if self.on_progress is not None:
            self.on_progress(progress)

    def _render_or_skip(self, bundle: ExportBundle) -> Optional[bytes]:
        try:
            return self._render(bundle)
        except RenderTimeoutError:
            logger.warning(
                "Render timed out, skipping resource",
                resource_id=str(bundle.resource_id),
                name=bundle.name,
                timeout=self.render_timeout,
            )
        except Exception as exc:
            logger.warning(
                "Render failed, skipping resource",
                resource_id=str(bundle.resource_id),
                name=bundle.name,
                error=repr(exc),
            )
        self.skipped.append(bundle.name)
        return None

    def _render(self, bundle: ExportBundle) -> bytes:
        if not self.render_timeout:
            return self.render(bundle, self.watermark)

        result: dict = {}

        def _target() -> None:
            try:
                result["content"] = self.render(bundle, self.watermark)
            except Exception as exc:
                result["error"] = exc

        # Daemon thread: a hung render is abandoned and never blocks exit.
        worker = threading.Thread(
            target=_target,
            name=f"export-render-{bundle.resource_id}",
            daemon=True,
        )
        worker.start()
        worker.join(self.render_timeout)
        if worker.is_alive():
            raise RenderTimeoutError(
                f"Render exceeded {self.render_timeout}s for {bundle.name!r}"
            )
        if "error" in result:
            raise result["error"]
        return result["content"]

    def _settle(self, outcome: ExportOutcome) -> ExportOutcome:
        self.state = outcome.state
        logger.info(
            "Batch export settled",
            state=self.state.value,
            total=len(self.bundles),
            success_count=self.success_count,
            skipped=len(self.skipped),
        )
        return outcome


__all__ = [
    "RenderTimeoutError",
    "ExportState",
    "ExportProgress",
    "CancellationToken",
    "ExportArchive",
    "ExportCancelled",
    "ExportEmpty",
    "ExportOutcome",
    "BatchExportJob",
]
