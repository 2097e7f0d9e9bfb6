"""Version-gate patching for installer Distribution manifests.

A Distribution file blocks installation on newer systems with a check like::

    system.compareVersions(system.version.ProductVersion, '26.1') < 0

`patch_version_gate` rewrites the quoted threshold to a sentinel that no real
system version reaches, leaving every other byte of the file alone.
"""

from __future__ import annotations

import logging
import re
import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

logger = logging.getLogger(__name__)


# Matches the quoted two-part threshold that follows `ProductVersion,` in a
# comparison call. Groups:
#   prefix - `ProductVersion,` plus any whitespace and the opening quote
#   version - the `<major>.<minor>` threshold, the only span replaced
# The lookahead requires the same quote to close the literal directly after
# the number, so '26.1.2', bare numbers, and numbers elsewhere in the file
# never match.
GATE_PATTERN = re.compile(
    r"""(?P<prefix>\bProductVersion,\s*(?P<quote>['"]))(?P<version>[0-9]+\.[0-9]+)(?=(?P=quote))"""
)

VERSION_MARKER = "ProductVersion"

_ENCODING = "utf-8"
_ERRORS = "surrogateescape"


@dataclass(frozen=True)
class GatePatch:
    text: str
    found: bool
    count: int


@dataclass
class ManifestPatchResult:
    path: Path
    backup_path: Optional[Path] = None
    found: bool = False
    replacements: int = 0
    verified: bool = False
    before_lines: List[str] = field(default_factory=list)
    after_lines: List[str] = field(default_factory=list)


def patch_version_gate(text: str, sentinel: str) -> GatePatch:
    """Replace every gate threshold in `text` with `sentinel`.

    Pure function: returns the new text, whether a gate was present and how
    many thresholds were rewritten. Text without a gate is returned as is.
    """

    new_text, count = GATE_PATTERN.subn(lambda m: m.group("prefix") + sentinel, text)
    return GatePatch(text=new_text, found=count > 0, count=count)


def has_version_checks(text: str) -> bool:
    return VERSION_MARKER in text


def gate_lines(text: str, limit: int = 3) -> List[str]:
    lines = [line for line in text.splitlines() if VERSION_MARKER in line]
    return lines[:limit]


def excerpt(text: str, lines: int = 30) -> str:
    return "\n".join(text.splitlines()[:lines])


def read_manifest(path: Path) -> str:
    # Byte-faithful: no newline translation, undecodable bytes survive a round trip.
    return path.read_bytes().decode(_ENCODING, _ERRORS)


def write_manifest(path: Path, text: str) -> None:
    path.write_bytes(text.encode(_ENCODING, _ERRORS))


def backup_path_for(path: Path) -> Path:
    return path.with_name(path.name + ".backup")


def patch_manifest_file(path: Path, sentinel: str) -> ManifestPatchResult:
    """Back up `path`, patch its version gate in place and verify the result.

    A manifest without a gate is left untouched and gets no backup, so the
    expanded tree repackages exactly as it was unpacked.
    """

    if not path.is_file():
        raise FileNotFoundError(str(path))

    original = read_manifest(path)
    result = ManifestPatchResult(path=path, before_lines=gate_lines(original))

    patched = patch_version_gate(original, sentinel)
    result.found = patched.found
    result.replacements = patched.count
    if not patched.found:
        return result

    backup = backup_path_for(path)
    shutil.copyfile(path, backup)
    result.backup_path = backup
    logger.debug("Backed up %s -> %s", path, backup)

    write_manifest(path, patched.text)

    written = read_manifest(path)
    result.after_lines = gate_lines(written)
    result.verified = sentinel in written
    logger.debug("Rewrote %d version threshold(s) in %s", patched.count, path)
    return result
