from __future__ import annotations

import logging
import os
import shutil
from pathlib import Path
from typing import Iterator, List, Optional

logger = logging.getLogger(__name__)

PACKAGE_SUFFIX = ".pkg"


def parse_mount_point(output: str, *, volumes_root: str = "/Volumes") -> Optional[str]:
    """Return the mount point from `hdiutil attach` output.

    hdiutil prints one tab-separated row per partition; the mounted one ends
    with its mount point. Volume names may contain spaces, so the last tab
    field is taken when tabs are present.
    """

    marker = volumes_root.rstrip("/") + "/"
    for line in output.splitlines():
        if marker not in line:
            continue
        if "\t" in line:
            field = line.rstrip().split("\t")[-1].strip()
        else:
            parts = line.split()
            field = parts[-1] if parts else ""
        if field.startswith(marker):
            return field
        # Fall back to slicing from the marker for oddly padded rows.
        return line[line.index(marker):].strip()
    return None


def _iter_packages(volume: Path) -> Iterator[Path]:
    for root, dirs, files in os.walk(volume):
        dirs.sort()
        base = Path(root)
        bundles = [d for d in dirs if d.lower().endswith(PACKAGE_SUFFIX)]
        for name in sorted(files):
            if name.lower().endswith(PACKAGE_SUFFIX):
                yield base / name
        for name in bundles:
            yield base / name
        # Bundle directories are packages, not places to search.
        dirs[:] = [d for d in dirs if d not in bundles]


def find_package(volume: Path, vendor_hint: str) -> Optional[Path]:
    """Find the installer package on a mounted volume.

    Prefers a package whose name contains `vendor_hint` (case-insensitive),
    then falls back to the first package found.
    """

    candidates = list(_iter_packages(volume))
    logger.debug("Package candidates on %s: %s", volume, [str(c) for c in candidates])
    hint = vendor_hint.lower()
    for c in candidates:
        if hint and hint in c.name.lower():
            return c
    return candidates[0] if candidates else None


def list_volume(volume: Path) -> str:
    """Recursive listing of `volume`, used when no package is found."""

    lines: List[str] = []
    for root, dirs, files in os.walk(volume):
        dirs.sort()
        lines.append(f"{root}:")
        lines.extend(sorted(dirs + files))
        lines.append("")
    return "\n".join(lines).rstrip()


def copy_package(src: Path, dest: Path) -> Path:
    """Copy a flat package file or a package bundle directory to `dest`."""

    if src.is_dir():
        shutil.copytree(src, dest, symlinks=True)
    else:
        shutil.copy2(src, dest)
    return dest


def remove_package(path: Path) -> None:
    """Remove a flat package or bundle directory; missing paths are fine."""

    if path.is_dir() and not path.is_symlink():
        shutil.rmtree(path)
    elif path.exists() or path.is_symlink():
        path.unlink()
