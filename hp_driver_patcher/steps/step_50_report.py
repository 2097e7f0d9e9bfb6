from __future__ import annotations

import logging
from typing import List

from ..logging_utils import GREEN, NC, REPORT_LOGGER
from ..pipeline import PipelineContext

report = logging.getLogger(REPORT_LOGGER)

BANNER = "======================================"


def install_instructions(output_name: str) -> List[str]:
    return [
        "To install the modified drivers:",
        f"  1. GUI: Double-click '{output_name}'",
        f"  2. CLI: sudo installer -pkg {output_name} -target /",
        "",
        "Note: The package is unsigned. You may need to:",
        "  - Allow installation from System Preferences > Security & Privacy",
        "  - Or temporarily disable Gatekeeper (not recommended)",
    ]


class ReportStep:
    step_id = "50_report"

    def __init__(self, *, color: bool = False):
        self.color = color

    def run(self, ctx: PipelineContext) -> PipelineContext:
        cfg = ctx.config
        title = f"{GREEN}Modification Complete!{NC}" if self.color else "Modification Complete!"

        lines = ["", BANNER, title, BANNER, ""]
        lines += install_instructions(cfg.output_name)
        lines += ["", "Files created:", f"  - {cfg.output_name} (modified package ready to install)"]
        if ctx.package_path.exists():
            lines.append(f"  - {cfg.package_name} (original package for reference)")
        lines.append("")

        for line in lines:
            report.info("%s", line)
        return ctx
