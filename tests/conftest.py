"""
Shared test fixtures: a fake PackagingTools backed by plain directories.
"""

import shutil
import textwrap
from pathlib import Path
from typing import List, Tuple

import pytest

from hp_driver_patcher.config import PatcherConfig
from hp_driver_patcher.lib.tools import MountResult, ToolError
from hp_driver_patcher.logging_utils import reset_logging
from hp_driver_patcher.pipeline import PipelineContext

GATED_DISTRIBUTION = textwrap.dedent("""\
    <?xml version="1.0" encoding="utf-8"?>
    <installer-gui-script minSpecVersion="2">
        <title>HP Printer Drivers</title>
        <options customize="never" rootVolumeOnly="true"/>
        <volume-check>
            <allowed-os-versions>
                <os-version min="10.9"/>
            </allowed-os-versions>
        </volume-check>
        <installation-check script="InstallationCheck()"/>
        <script>
        function InstallationCheck() {
            if (system.compareVersions(system.version.ProductVersion, '26.1') >= 0) {
                my.result.type = 'Fatal';
                return false;
            }
            return true;
        }
        </script>
        <pkg-ref id="com.hp.print" version="5.1.1">#HewlettPackardPrinterDrivers.pkg</pkg-ref>
    </installer-gui-script>
""")

UNGATED_DISTRIBUTION = textwrap.dedent("""\
    <?xml version="1.0" encoding="utf-8"?>
    <installer-gui-script minSpecVersion="2">
        <title>HP Printer Drivers</title>
        <pkg-ref id="com.hp.print" version="5.1.1">#HewlettPackardPrinterDrivers.pkg</pkg-ref>
    </installer-gui-script>
""")


class FakeTools:
    """Directory-backed stand-in for curl/hdiutil/pkgutil.

    The "disk image" mounts as `volumes_root/<volume_name>` holding the given
    package names; "expanding" a package writes a Distribution manifest.
    """

    def __init__(
        self,
        volumes_root: Path,
        *,
        volume_name: str = "HP Printer Drivers",
        packages: Tuple[str, ...] = ("HewlettPackardPrinterDrivers.pkg",),
        distribution: str = GATED_DISTRIBUTION,
    ):
        self.volumes_root = volumes_root
        self.volume_name = volume_name
        self.packages = packages
        self.distribution = distribution
        self.calls: List[Tuple[str, str]] = []

        self.fail_download = False
        self.fail_mount = False
        self.report_mount_point = True
        self.fail_unmount = 0
        self.fail_expand = False
        self.fail_flatten = False
        self.flatten_writes_output = True
        self.write_manifest = True

    @property
    def volume(self) -> Path:
        return self.volumes_root / self.volume_name

    def download(self, url: str, dest: Path) -> Path:
        self.calls.append(("download", url))
        if self.fail_download:
            raise ToolError(f"Download failed: {url}")
        dest.write_bytes(b"dmg-bytes")
        return dest

    def mount(self, image: Path) -> MountResult:
        self.calls.append(("mount", str(image)))
        if self.fail_mount:
            raise ToolError("hdiutil attach failed")
        self.volume.mkdir(parents=True, exist_ok=True)
        for name in self.packages:
            (self.volume / name).write_bytes(b"xar!" + name.encode())
        mount_point = str(self.volume) if self.report_mount_point else None
        return MountResult(mount_point=mount_point, raw_output="")

    def unmount(self, mount_point: str, *, quiet: bool = False) -> bool:
        self.calls.append(("unmount", mount_point))
        if self.fail_unmount > 0:
            self.fail_unmount -= 1
            return False
        shutil.rmtree(mount_point, ignore_errors=True)
        return True

    def expand_package(self, package: Path, dest: Path) -> Path:
        self.calls.append(("expand", str(package)))
        if self.fail_expand or dest.exists():
            raise ToolError("pkgutil --expand failed")
        dest.mkdir()
        (dest / "Payload").write_bytes(package.read_bytes())
        if self.write_manifest:
            (dest / "Distribution").write_text(self.distribution, encoding="utf-8")
        return dest

    def flatten_package(self, source_dir: Path, output: Path) -> Path:
        self.calls.append(("flatten", str(source_dir)))
        if self.fail_flatten:
            raise ToolError("pkgutil --flatten failed")
        if self.flatten_writes_output:
            parts = []
            for p in sorted(source_dir.rglob("*")):
                if p.is_file():
                    parts.append(p.relative_to(source_dir).as_posix().encode() + b"\n" + p.read_bytes())
            output.write_bytes(b"\0".join(parts))
        return output

    def called(self, name: str) -> bool:
        return any(c[0] == name for c in self.calls)

    def mounted(self) -> bool:
        return self.volume.exists()


@pytest.fixture
def work_dir(tmp_path: Path) -> Path:
    d = tmp_path / "work"
    d.mkdir()
    return d


@pytest.fixture
def volumes_root(tmp_path: Path) -> Path:
    d = tmp_path / "Volumes"
    d.mkdir()
    return d


@pytest.fixture
def fake_tools(volumes_root: Path) -> FakeTools:
    return FakeTools(volumes_root)


@pytest.fixture
def config(volumes_root: Path) -> PatcherConfig:
    return PatcherConfig(raw={"mount": {"volume_glob": str(volumes_root / "HP*")}})


@pytest.fixture
def ctx(config: PatcherConfig, fake_tools: FakeTools, work_dir: Path) -> PipelineContext:
    return PipelineContext(config=config, tools=fake_tools, work_dir=work_dir)


@pytest.fixture(autouse=True)
def _reset_logging():
    yield
    reset_logging()
