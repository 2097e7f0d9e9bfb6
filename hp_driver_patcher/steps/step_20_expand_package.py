from __future__ import annotations

import logging

from ..lib.tools import ToolError
from ..pipeline import PipelineContext, PipelineError

logger = logging.getLogger(__name__)


class ExpandPackageStep:
    step_id = "20_expand_package"

    def run(self, ctx: PipelineContext) -> PipelineContext:
        if not ctx.package_path.exists():
            raise PipelineError(f"Package not found: {ctx.package_path}")

        logger.info("Extracting package contents...")
        try:
            ctx.tools.expand_package(ctx.package_path, ctx.expanded_dir)
        except ToolError as e:
            raise PipelineError(f"Failed to extract package ({e})") from e
        return ctx
