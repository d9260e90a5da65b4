"""
Tests for patch metadata lookup.
"""

from patchgate.services.patches.metadata import (
    extract_metadata_from_patch,
    get_patch_metadata,
    parse_metadata_file,
)


def test_parse_metadata_file():
    metadata = parse_metadata_file(
        "Reason: CVE-2024-0001\n"
        "Date: 2024-03-01\n"
        "PR: #42\n"
        "Invariants: no-eval-usage, cryptographic-integrity\n"
        "Description: Drop md5 fallback\n"
    )
    assert metadata.reason == "CVE-2024-0001"
    assert metadata.date == "2024-03-01"
    assert metadata.pr == "#42"
    assert metadata.invariants == ["no-eval-usage", "cryptographic-integrity"]
    assert metadata.description == "Drop md5 fallback"


def test_extract_from_patch_headers():
    metadata = extract_metadata_from_patch(
        "# Category: features\n# Created: 2024-05-06 by ci\n# Description: Add hook\ndiff --git\n"
    )
    assert metadata.reason == "feature enhancement"
    assert metadata.date == "2024-05-06"
    assert metadata.description == "Add hook"
    assert metadata.invariants == ["unknown"]


def test_headers_after_first_lines_are_ignored():
    content = "\n" * 10 + "# Created: 2024-05-06\n"
    assert extract_metadata_from_patch(content).date == "unknown"


def test_sidecar_file_wins(tmp_path, write_manifest):
    (tmp_path / "patches").mkdir()
    (tmp_path / "patches" / "lodash@4.17.21.patch").write_text("# Created: 2020-01-01\n")
    (tmp_path / "patches" / "lodash@4.17.21.md").write_text("Reason: perf\nDate: 2024-01-01\n")
    manifest = write_manifest({"lodash@4.17.21": "patches/lodash@4.17.21.patch"})

    metadata = get_patch_metadata("lodash", str(manifest))

    assert metadata.reason == "perf"
    assert metadata.date == "2024-01-01"


def test_falls_back_to_patch_headers(tmp_path, write_manifest):
    (tmp_path / "axios.patch").write_text("# Category: security\n# Created: 2023-07-08\n")
    manifest = write_manifest({"axios@1.6.0": "axios.patch"})

    metadata = get_patch_metadata("axios", str(manifest))

    assert metadata.reason == "security"
    assert metadata.date == "2023-07-08"


def test_unpatched_package(tmp_path, write_manifest):
    manifest = write_manifest({"axios@1.6.0": "axios.patch"})
    assert get_patch_metadata("lodash", str(manifest)) is None
