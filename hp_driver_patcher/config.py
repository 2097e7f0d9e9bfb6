from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

DEFAULT_CONFIG_NAME = "hp-driver-patcher.yaml"

DEFAULT_SOURCE_URL = (
    "https://ftp.hp.com/pub/softlib/software12/HP_Quick_Start/osx/Applications/ASU/"
    "HewlettPackardPrinterDrivers.dmg"
)
DEFAULT_SENTINEL = "99.0"

_SENTINEL_RE = re.compile(r"^[0-9]+\.[0-9]+$")


@dataclass(frozen=True)
class PatcherConfig:
    raw: Dict[str, Any] = field(default_factory=dict)

    def _section(self, name: str) -> Dict[str, Any]:
        return self.raw.get(name) or {}

    @property
    def source_url(self) -> str:
        return str(self.raw.get("source_url") or DEFAULT_SOURCE_URL)

    @property
    def archive_name(self) -> str:
        return str(self._section("paths").get("archive") or "HewlettPackardPrinterDrivers.dmg")

    @property
    def package_name(self) -> str:
        return str(self._section("paths").get("package") or "HewlettPackardPrinterDrivers.pkg")

    @property
    def output_name(self) -> str:
        return str(self._section("paths").get("output") or "HewlettPackardPrinterDrivers-modified.pkg")

    @property
    def expanded_dir_name(self) -> str:
        return str(self._section("paths").get("expanded_dir") or "extracted")

    @property
    def known_mount_path(self) -> Optional[str]:
        value = self._section("mount").get("known_path")
        return str(value) if value else None

    @property
    def volume_glob(self) -> str:
        return str(self._section("mount").get("volume_glob") or "/Volumes/HP*")

    @property
    def vendor_hint(self) -> str:
        return str(self._section("package").get("vendor_hint") or "HewlettPackard")

    @property
    def manifest_name(self) -> str:
        return str(self._section("manifest").get("name") or "Distribution")

    @property
    def sentinel(self) -> str:
        value = self._section("manifest").get("sentinel")
        return str(value) if value is not None else DEFAULT_SENTINEL

    def validate(self) -> "PatcherConfig":
        raw_sentinel = self._section("manifest").get("sentinel")
        if raw_sentinel is not None and not isinstance(raw_sentinel, str):
            # YAML turns an unquoted 99.10 into the float 99.1.
            raise ValueError(f"manifest.sentinel must be a quoted string like \"99.0\", got {raw_sentinel!r}")
        if not _SENTINEL_RE.match(self.sentinel):
            raise ValueError(f"manifest.sentinel must look like '99.0', got {self.sentinel!r}")
        if not self.source_url.lower().startswith(("http://", "https://")):
            raise ValueError(f"source_url must be an http(s) URL, got {self.source_url!r}")
        return self


def default_config() -> PatcherConfig:
    return PatcherConfig(raw={})


def load_config(path: str) -> PatcherConfig:
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(path)

    if p.suffix.lower() not in {".yaml", ".yml"}:
        raise ValueError("patcher config must be YAML")

    try:
        import yaml  # type: ignore
    except Exception as e:
        raise RuntimeError("PyYAML is required to read the patcher config") from e

    raw = yaml.safe_load(p.read_text(encoding="utf-8")) or {}
    if not isinstance(raw, dict):
        raise ValueError(f"{p.name} must contain a mapping/object")

    return PatcherConfig(raw=raw).validate()


def resolve_config(config_path: Optional[str], work_dir: Path) -> PatcherConfig:
    """Explicit path wins; otherwise pick up a config next to the work dir if present."""

    if config_path:
        return load_config(config_path)
    candidate = work_dir / DEFAULT_CONFIG_NAME
    if candidate.exists():
        return load_config(str(candidate))
    return default_config()
