from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Protocol

from .command import CommandError, run_cmd
from .diskimage import parse_mount_point

logger = logging.getLogger(__name__)


class ToolError(RuntimeError):
    """A platform packaging facility failed."""


@dataclass(frozen=True)
class MountResult:
    mount_point: Optional[str]
    raw_output: str


class PackagingTools(Protocol):
    """Every call the pipeline makes into the host platform."""

    def download(self, url: str, dest: Path) -> Path:
        ...

    def mount(self, image: Path) -> MountResult:
        ...

    def unmount(self, mount_point: str, *, quiet: bool = False) -> bool:
        ...

    def expand_package(self, package: Path, dest: Path) -> Path:
        ...

    def flatten_package(self, source_dir: Path, output: Path) -> Path:
        ...


class MacPackagingTools:
    """curl + hdiutil + pkgutil."""

    def __init__(self, *, volumes_root: str = "/Volumes"):
        self.volumes_root = volumes_root

    def download(self, url: str, dest: Path) -> Path:
        try:
            run_cmd(["curl", "-L", "-f", "-o", str(dest), url])
        except CommandError as e:
            raise ToolError(f"Download failed: {url}") from e
        return dest

    def mount(self, image: Path) -> MountResult:
        try:
            r = run_cmd(["hdiutil", "attach", str(image), "-nobrowse"])
        except CommandError as e:
            raise ToolError(f"hdiutil attach failed for {image}: {e.result.output.strip()}") from e
        output = r.output
        return MountResult(
            mount_point=parse_mount_point(output, volumes_root=self.volumes_root),
            raw_output=output,
        )

    def unmount(self, mount_point: str, *, quiet: bool = False) -> bool:
        argv = ["hdiutil", "detach", mount_point]
        if quiet:
            argv.append("-quiet")
        r = run_cmd(argv, check=False)
        if not r.ok:
            logger.debug("hdiutil detach %s exited %d", mount_point, r.returncode)
        return r.ok

    def expand_package(self, package: Path, dest: Path) -> Path:
        try:
            run_cmd(["pkgutil", "--expand", str(package), str(dest)])
        except CommandError as e:
            raise ToolError(f"pkgutil --expand failed: {e.result.output.strip()}") from e
        return dest

    def flatten_package(self, source_dir: Path, output: Path) -> Path:
        try:
            run_cmd(["pkgutil", "--flatten", str(source_dir), str(output)])
        except CommandError as e:
            raise ToolError(f"pkgutil --flatten failed: {e.result.output.strip()}") from e
        return output
