from .step_10_acquire_package import AcquirePackageStep
from .step_20_expand_package import ExpandPackageStep
from .step_30_patch_manifest import PatchManifestStep
from .step_40_flatten_package import FlattenPackageStep
from .step_50_report import ReportStep

__all__ = [
    "AcquirePackageStep",
    "ExpandPackageStep",
    "PatchManifestStep",
    "FlattenPackageStep",
    "ReportStep",
]
