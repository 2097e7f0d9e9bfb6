from __future__ import annotations

import logging

from ..lib.manifest import excerpt, patch_manifest_file, read_manifest
from ..logging_utils import REPORT_LOGGER
from ..pipeline import PipelineContext, PipelineError

logger = logging.getLogger(__name__)
report = logging.getLogger(REPORT_LOGGER)


class PatchManifestStep:
    step_id = "30_patch_manifest"

    def run(self, ctx: PipelineContext) -> PipelineContext:
        cfg = ctx.config
        manifest = ctx.manifest_path

        logger.info("Modifying version restrictions...")
        if not manifest.is_file():
            raise PipelineError(f"{cfg.manifest_name} file not found")

        result = patch_manifest_file(manifest, cfg.sentinel)
        ctx.manifest_result = result

        logger.info("Checking original version restrictions...")
        if result.before_lines:
            report.info("Found version checks in %s file:", cfg.manifest_name)
            for line in result.before_lines:
                report.info("%s", line)
        else:
            logger.warning("No ProductVersion checks found in %s file", cfg.manifest_name)

        if result.found:
            logger.info("Version check successfully modified")
            report.info("New version checks:")
            if result.after_lines:
                for line in result.after_lines:
                    report.info("%s", line)
            else:
                report.info("(No ProductVersion lines found after modification)")
            if not result.verified:
                logger.warning("Sentinel %s not present after rewriting %s", cfg.sentinel, manifest)
        else:
            logger.warning("No known version patterns found to modify. Package may work without changes.")
            report.info("%s file content (first 30 lines):", cfg.manifest_name)
            report.info("%s", excerpt(read_manifest(manifest)))
        return ctx
