from __future__ import annotations

import glob
import logging
import signal
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Protocol, Sequence

from .config import PatcherConfig
from .lib.diskimage import remove_package
from .lib.manifest import ManifestPatchResult
from .lib.tools import PackagingTools

logger = logging.getLogger(__name__)


class PipelineError(RuntimeError):
    """Fatal condition: abort the run after cleanup."""


@dataclass
class PipelineContext:
    config: PatcherConfig
    tools: PackagingTools
    work_dir: Path

    mount_point: Optional[str] = None
    acquired: bool = False
    manifest_result: Optional[ManifestPatchResult] = None
    output_size: Optional[int] = None
    notes: Dict[str, Any] = field(default_factory=dict)

    @property
    def archive_path(self) -> Path:
        return self.work_dir / self.config.archive_name

    @property
    def package_path(self) -> Path:
        return self.work_dir / self.config.package_name

    @property
    def partial_package_path(self) -> Path:
        # Copy target until the package is complete; never reused across runs.
        return self.work_dir / (self.config.package_name + ".partial")

    @property
    def expanded_dir(self) -> Path:
        return self.work_dir / self.config.expanded_dir_name

    @property
    def manifest_path(self) -> Path:
        return self.expanded_dir / self.config.manifest_name

    @property
    def output_path(self) -> Path:
        return self.work_dir / self.config.output_name


class Step(Protocol):
    """A single pipeline stage."""

    step_id: str

    def run(self, ctx: PipelineContext) -> PipelineContext:
        ...


@dataclass(frozen=True)
class PipelineResult:
    ctx: PipelineContext
    ran_steps: List[str]


def run_pipeline(*, ctx: PipelineContext, steps: Sequence[Step]) -> PipelineResult:
    """Run steps in order; the first exception stops the run."""

    ran: List[str] = []
    for step in steps:
        ctx.notes["current_step"] = step.step_id
        logger.debug("Running step %s", step.step_id)
        ctx = step.run(ctx)
        ran.append(step.step_id)

    ctx.notes["current_step"] = None
    return PipelineResult(ctx=ctx, ran_steps=ran)


def _try_unmount(ctx: PipelineContext, mount_point: str) -> bool:
    try:
        return ctx.tools.unmount(mount_point, quiet=True)
    except Exception as e:
        logger.warning("Unmounting %s raised: %s", mount_point, e)
        return False


def cleanup(ctx: PipelineContext) -> None:
    """Release every transient artifact. Never raises."""

    logger.info("Cleaning up temporary files...")

    if ctx.mount_point and Path(ctx.mount_point).is_dir():
        if _try_unmount(ctx, ctx.mount_point):
            ctx.mount_point = None
        else:
            logger.warning("Failed to unmount %s", ctx.mount_point)

    # Sweep any vendor volume left attached by an earlier step or run.
    for vol in sorted(glob.glob(ctx.config.volume_glob)):
        if Path(vol).is_dir():
            _try_unmount(ctx, vol)

    for path in (ctx.expanded_dir, ctx.archive_path, ctx.partial_package_path):
        try:
            remove_package(path)
        except OSError as e:
            logger.warning("Could not remove %s: %s", path, e)


@contextmanager
def transient_artifacts(ctx: PipelineContext) -> Iterator[PipelineContext]:
    """Scope the run so cleanup happens on every exit path."""

    try:
        yield ctx
    finally:
        try:
            cleanup(ctx)
        except Exception:
            logger.exception("Cleanup failed")


@contextmanager
def handle_termination() -> Iterator[None]:
    """Turn SIGTERM into SystemExit so pending finally blocks still run."""

    def _handle(signum, _frame):
        raise SystemExit(128 + signum)

    try:
        previous = signal.signal(signal.SIGTERM, _handle)
    except ValueError:
        # Not the main thread; leave signal handling to the host.
        yield
        return

    try:
        yield
    finally:
        signal.signal(signal.SIGTERM, previous)
