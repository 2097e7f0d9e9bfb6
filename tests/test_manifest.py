"""
Tests for the version-gate patcher — pattern precision and file handling.
"""

from pathlib import Path

import pytest

from hp_driver_patcher.lib.manifest import (
    GATE_PATTERN,
    excerpt,
    gate_lines,
    has_version_checks,
    patch_manifest_file,
    patch_version_gate,
)

from .conftest import GATED_DISTRIBUTION, UNGATED_DISTRIBUTION


def _outside_matches_equal(before: str, after: str, sentinel: str) -> bool:
    """Every byte outside the rewritten threshold spans must be unchanged."""
    rebuilt = []
    pos = 0
    for m in GATE_PATTERN.finditer(before):
        rebuilt.append(before[pos:m.start("version")])
        rebuilt.append(sentinel)
        pos = m.end("version")
    rebuilt.append(before[pos:])
    return "".join(rebuilt) == after


class TestPatchVersionGate:
    """Tests for patch_version_gate()."""

    def test_single_quoted_threshold(self):
        text = "compareVersions(system.version.ProductVersion, '26.1')"
        patched = patch_version_gate(text, "99.0")
        assert patched.text == "compareVersions(system.version.ProductVersion, '99.0')"
        assert patched.found
        assert patched.count == 1

    def test_double_quoted_threshold(self):
        text = 'system.compareVersions(system.version.ProductVersion, "14.0") < 0'
        patched = patch_version_gate(text, "99.0")
        assert patched.text == 'system.compareVersions(system.version.ProductVersion, "99.0") < 0'

    def test_all_occurrences_replaced(self):
        text = (
            "if (system.compareVersions(system.version.ProductVersion, '10.9') < 0) return false;\n"
            "if (system.compareVersions(system.version.ProductVersion, \"26.1\") >= 0) return false;\n"
            "if (system.compareVersions(system.version.ProductVersion, '15.4') >= 0) warn();\n"
        )
        patched = patch_version_gate(text, "99.0")
        assert patched.count == 3
        assert "'99.0'" in patched.text and '"99.0"' in patched.text
        assert "10.9" not in patched.text and "26.1" not in patched.text

    def test_unrelated_numbers_untouched(self):
        patched = patch_version_gate(GATED_DISTRIBUTION, "99.0")
        assert 'version="5.1.1"' in patched.text
        assert 'min="10.9"' in patched.text
        assert 'version="1.0"' in patched.text
        assert _outside_matches_equal(GATED_DISTRIBUTION, patched.text, "99.0")

    def test_only_the_number_changes(self):
        patched = patch_version_gate(GATED_DISTRIBUTION, "99.0")
        assert len(patched.text) == len(GATED_DISTRIBUTION)
        diff = [i for i, (a, b) in enumerate(zip(GATED_DISTRIBUTION, patched.text)) if a != b]
        start = GATED_DISTRIBUTION.index("'26.1'") + 1
        assert diff and all(start <= i < start + 4 for i in diff)

    @pytest.mark.parametrize(
        "text",
        [
            "ProductVersion, '26.1.2'",  # three-part literal
            "ProductVersion, '26'",  # no minor part
            "ProductVersion, 26.1",  # unquoted
            "ProductVersion, '26.1\"",  # mismatched quotes
            "BuildVersion, '26.1'",  # different identifier
            "myProductVersion, '26.1'",  # not a word boundary
        ],
    )
    def test_near_misses_do_not_match(self, text: str):
        patched = patch_version_gate(text, "99.0")
        assert not patched.found
        assert patched.text == text

    def test_whitespace_after_comma_tolerated(self):
        patched = patch_version_gate("ProductVersion,'26.1'", "99.0")
        assert patched.text == "ProductVersion,'99.0'"

    def test_no_gate(self):
        patched = patch_version_gate(UNGATED_DISTRIBUTION, "99.0")
        assert patched.found is False
        assert patched.count == 0
        assert patched.text == UNGATED_DISTRIBUTION

    def test_custom_sentinel(self):
        patched = patch_version_gate("ProductVersion, '26.1'", "1000.0")
        assert patched.text == "ProductVersion, '1000.0'"


class TestDiagnostics:
    def test_has_version_checks(self):
        assert has_version_checks(GATED_DISTRIBUTION)
        assert not has_version_checks(UNGATED_DISTRIBUTION)

    def test_gate_lines_limited(self):
        text = "\n".join(f"ProductVersion line {i}" for i in range(5))
        assert gate_lines(text) == [f"ProductVersion line {i}" for i in range(3)]

    def test_excerpt(self):
        text = "\n".join(str(i) for i in range(50))
        assert excerpt(text).splitlines() == [str(i) for i in range(30)]


class TestPatchManifestFile:
    """Tests for patch_manifest_file()."""

    def test_patches_and_keeps_identical_backup(self, tmp_path: Path):
        manifest = tmp_path / "Distribution"
        original = b"compareVersions(system.version.ProductVersion, '26.1')\r\n\xff tail\n"
        manifest.write_bytes(original)

        result = patch_manifest_file(manifest, "99.0")

        assert result.found and result.verified
        assert result.replacements == 1
        assert result.backup_path == tmp_path / "Distribution.backup"
        assert result.backup_path.read_bytes() == original
        assert manifest.read_bytes() == (
            b"compareVersions(system.version.ProductVersion, '99.0')\r\n\xff tail\n"
        )
        assert result.before_lines == ["compareVersions(system.version.ProductVersion, '26.1')"]
        assert result.after_lines == ["compareVersions(system.version.ProductVersion, '99.0')"]

    def test_no_gate_leaves_file_alone(self, tmp_path: Path):
        manifest = tmp_path / "Distribution"
        manifest.write_text(UNGATED_DISTRIBUTION, encoding="utf-8")

        result = patch_manifest_file(manifest, "99.0")

        assert not result.found
        assert not result.verified
        assert result.after_lines == []
        assert manifest.read_text(encoding="utf-8") == UNGATED_DISTRIBUTION
        assert result.backup_path is None
        assert sorted(p.name for p in tmp_path.iterdir()) == ["Distribution"]

    def test_missing_manifest(self, tmp_path: Path):
        with pytest.raises(FileNotFoundError):
            patch_manifest_file(tmp_path / "Distribution", "99.0")
