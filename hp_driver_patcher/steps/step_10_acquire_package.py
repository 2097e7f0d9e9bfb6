from __future__ import annotations

import logging
import os
from contextlib import suppress
from pathlib import Path

from ..lib.diskimage import copy_package, find_package, list_volume, remove_package
from ..lib.tools import ToolError
from ..pipeline import PipelineContext, PipelineError

logger = logging.getLogger(__name__)


class AcquirePackageStep:
    step_id = "10_acquire_package"

    def run(self, ctx: PipelineContext) -> PipelineContext:
        cfg = ctx.config

        if ctx.package_path.exists():
            logger.warning("Package file already exists. Skipping download.")
            return ctx

        logger.info("Downloading HP printer drivers...")
        try:
            ctx.tools.download(cfg.source_url, ctx.archive_path)
        except ToolError as e:
            raise PipelineError(f"Failed to download DMG file ({e})") from e
        if not ctx.archive_path.is_file():
            raise PipelineError("Failed to download DMG file (no file written)")

        logger.info("Mounting DMG...")
        try:
            mounted = ctx.tools.mount(ctx.archive_path)
        except ToolError as e:
            raise PipelineError(f"Failed to mount DMG ({e})") from e

        mount_point = cfg.known_mount_path or mounted.mount_point
        # Record before validating so cleanup can detach whatever was attached.
        ctx.mount_point = mount_point
        if not mount_point or not Path(mount_point).is_dir():
            raise PipelineError("Failed to determine mount point")
        logger.info("DMG mounted at: %s", mount_point)

        logger.info("Searching for package file in DMG...")
        volume = Path(mount_point)
        found = find_package(volume, cfg.vendor_hint)
        if found is None:
            raise PipelineError(f"Package not found in DMG. Contents of DMG:\n{list_volume(volume)}")

        logger.info("Found package: %s", found.name)
        logger.info("Copying package...")
        # The package only appears under its real name once complete, so a
        # half-written copy can never satisfy the skip check on a rerun.
        partial = ctx.partial_package_path
        try:
            remove_package(partial)
            copy_package(found, partial)
            os.replace(partial, ctx.package_path)
        except OSError as e:
            # Cleanup retries the partial copy if this removal fails too.
            with suppress(OSError):
                remove_package(partial)
            raise PipelineError(f"Failed to copy package ({e})") from e

        logger.info("Unmounting DMG...")
        if ctx.tools.unmount(mount_point, quiet=True):
            ctx.mount_point = None
        else:
            # Not fatal: the package is already copied out, cleanup retries.
            logger.warning("Failed to unmount DMG")

        ctx.archive_path.unlink(missing_ok=True)
        ctx.acquired = True
        return ctx
