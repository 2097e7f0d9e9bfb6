from __future__ import annotations

import logging
import math

from ..lib.tools import ToolError
from ..pipeline import PipelineContext, PipelineError

logger = logging.getLogger(__name__)


def human_size(num_bytes: int) -> str:
    """Size in the style of `du -h` (512B, 4.0K, 12M)."""

    if num_bytes < 1024:
        return f"{num_bytes}B"
    value = float(num_bytes)
    for unit in "KMGT":
        value /= 1024
        if value < 1024 or unit == "T":
            break
    if value < 10:
        return f"{math.ceil(value * 10) / 10:.1f}{unit}"
    return f"{math.ceil(value)}{unit}"


class FlattenPackageStep:
    step_id = "40_flatten_package"

    def run(self, ctx: PipelineContext) -> PipelineContext:
        logger.info("Repackaging modified drivers...")
        try:
            ctx.tools.flatten_package(ctx.expanded_dir, ctx.output_path)
        except ToolError as e:
            raise PipelineError(f"Failed to repackage ({e})") from e

        # pkgutil can exit 0 without writing anything; trust the filesystem.
        if not ctx.output_path.is_file():
            raise PipelineError("Modified package not created")

        ctx.output_size = ctx.output_path.stat().st_size
        logger.info(
            "Success! Modified package created: %s (%s)",
            ctx.config.output_name,
            human_size(ctx.output_size),
        )
        return ctx
