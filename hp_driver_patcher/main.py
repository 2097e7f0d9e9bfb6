from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional

from .config import resolve_config
from .lib.tools import MacPackagingTools, PackagingTools
from .logging_utils import DEFAULT_LOG_PATH, REPORT_LOGGER, configure_logging
from .pipeline import (
    PipelineContext,
    handle_termination,
    run_pipeline,
    transient_artifacts,
)
from .steps import (
    AcquirePackageStep,
    ExpandPackageStep,
    FlattenPackageStep,
    PatchManifestStep,
    ReportStep,
)

logger = logging.getLogger(__name__)
report = logging.getLogger(REPORT_LOGGER)

TITLE = "HP Printer Drivers Modifier for macOS"

# PipelineError, ToolError, CommandError and the missing-PyYAML error are all
# RuntimeErrors; bad config is ValueError, filesystem trouble OSError.
FATAL_ERRORS = (RuntimeError, OSError, ValueError)


def build_steps(*, color: bool = False):
    return [
        AcquirePackageStep(),
        ExpandPackageStep(),
        PatchManifestStep(),
        FlattenPackageStep(),
        ReportStep(color=color),
    ]


def run(
    *,
    work_dir: Optional[str] = None,
    config_path: Optional[str] = None,
    log_path: Optional[str] = DEFAULT_LOG_PATH,
    tools: Optional[PackagingTools] = None,
    verbose: bool = False,
) -> PipelineContext:
    """Download, patch and repackage the driver package; cleanup always runs."""

    configure_logging(log_path=log_path, level=logging.DEBUG if verbose else logging.INFO)

    wd = Path(work_dir or ".").resolve()
    try:
        cfg = resolve_config(config_path, wd)
    except FATAL_ERRORS as e:
        logger.error("%s", e)
        raise
    ctx = PipelineContext(config=cfg, tools=tools or MacPackagingTools(), work_dir=wd)

    for line in ("=" * 38, TITLE, "=" * 38, ""):
        report.info("%s", line)

    with handle_termination(), transient_artifacts(ctx):
        try:
            result = run_pipeline(ctx=ctx, steps=build_steps(color=sys.stdout.isatty()))
        except FATAL_ERRORS as e:
            # Report before cleanup starts talking.
            logger.error("%s", e)
            raise
    logger.debug("Ran steps: %s", ", ".join(result.ran_steps))
    return result.ctx


def main(argv: Optional[list[str]] = None) -> int:
    p = argparse.ArgumentParser(
        prog="hp-driver-patcher",
        description="Repackage the HP printer drivers without the macOS version restriction.",
    )
    p.add_argument("--config", default=None, help="YAML overrides (default: ./hp-driver-patcher.yaml if present)")
    p.add_argument("--log", default=DEFAULT_LOG_PATH, help="Path to the run log")
    p.add_argument("--work-dir", default=None, help="Directory for downloads and output (default: cwd)")
    p.add_argument("-v", "--verbose", action="store_true", help="Echo commands and their output")

    args = p.parse_args(argv)

    try:
        run(
            work_dir=args.work_dir,
            config_path=args.config,
            log_path=args.log,
            verbose=bool(args.verbose),
        )
    except FATAL_ERRORS:
        # Already reported by run().
        return 1
    except KeyboardInterrupt:
        logger.error("Interrupted")
        return 130
    except SystemExit as e:
        # SIGTERM during the run; cleanup already ran.
        logger.error("Terminated")
        return e.code if isinstance(e.code, int) else 1
    return 0
