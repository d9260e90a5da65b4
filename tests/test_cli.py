"""
Tests for the patchgate-validate, patchgate-tension and patchgate-operator tools.
"""

import pytest
import yaml

from patchgate.cli import reconcile as operator_cli
from patchgate.cli import tension as tension_cli
from patchgate.cli import validate as validate_cli


@pytest.fixture
def patched_repo(tmp_path, write_manifest):
    (tmp_path / "patches").mkdir()
    (tmp_path / "patches" / "good.patch").write_text(
        "# Category: security\n# Created: 2024-02-03\ndiff --git a/x b/x\n@@ -1 +1 @@\n+ok\n"
    )
    (tmp_path / "patches" / "bad.patch").write_text("+eval(x)\n")
    return tmp_path


class TestValidateCli:
    def test_audit_passes(self, patched_repo, write_manifest, capsys):
        manifest = write_manifest({"good@1.0.0": "patches/good.patch"})
        assert validate_cli.main(["--manifest", str(manifest)]) == 0
        assert "OK  good@1.0.0" in capsys.readouterr().out

    def test_audit_fails_on_critical(self, patched_repo, write_manifest, capsys):
        manifest = write_manifest(
            {"good@1.0.0": "patches/good.patch", "bad@1.0.0": "patches/bad.patch"}
        )
        assert validate_cli.main(["--manifest", str(manifest), "audit"]) == 1
        captured = capsys.readouterr()
        assert "[CRITICAL] no-eval-usage" in captured.out
        assert "Critical invariant violations found" in captured.err

    def test_missing_manifest(self, tmp_path, capsys):
        assert validate_cli.main(["--manifest", str(tmp_path / "nope.json")]) == 1
        assert "does not exist" in capsys.readouterr().err

    def test_single_patch(self, patched_repo):
        assert validate_cli.main(["patch", "bad", str(patched_repo / "patches" / "bad.patch")]) == 1
        assert validate_cli.main(["patch", "good", str(patched_repo / "patches" / "good.patch")]) == 0

    def test_inspect(self, patched_repo, capsys):
        assert validate_cli.main(["inspect", "bad", str(patched_repo / "patches" / "bad.patch")]) == 0
        assert "no diff header" in capsys.readouterr().out
        assert validate_cli.main(["inspect", "x", str(patched_repo / "missing.patch")]) == 1

    def test_why(self, patched_repo, write_manifest, capsys):
        manifest = write_manifest({"good@1.0.0": "patches/good.patch"})
        assert validate_cli.main(["--manifest", str(manifest), "why", "good"]) == 0
        out = capsys.readouterr().out
        assert "- Reason: security" in out
        assert "- Date: 2024-02-03" in out
        assert validate_cli.main(["--manifest", str(manifest), "why", "other"]) == 1

    def test_disabled_by_flag(self, patched_repo, write_manifest, monkeypatch):
        monkeypatch.setenv("PATCHGATE_FLAG_INVARIANT_VALIDATION", "false")
        manifest = write_manifest({"bad@1.0.0": "patches/bad.patch"})
        assert validate_cli.main(["--manifest", str(manifest)]) == 0


class TestTensionCli:
    def test_block_exits_1(self, tmp_path, capsys):
        patch = tmp_path / "p.patch"
        patch.write_text("+import rapidhash from 'rapidhash';\n")
        assert tension_cli.main([str(patch), "node-crypto"]) == 1
        assert "BLOCK" in capsys.readouterr().out

    def test_clear_exits_0(self, tmp_path, capsys):
        patch = tmp_path / "p.patch"
        patch.write_text("+const a = 1;\n")
        assert tension_cli.main([str(patch), "left-pad"]) == 0
        assert "CLEAR" in capsys.readouterr().out

    def test_missing_patch(self, tmp_path, capsys):
        assert tension_cli.main([str(tmp_path / "missing.patch"), "left-pad"]) == 1
        assert "does not exist" in capsys.readouterr().err


class TestOperatorCli:
    def test_once(self, tmp_path, monkeypatch, capsys):
        monkeypatch.setenv("PATCHGATE_FLAG_COSIGN_SIGNING", "false")
        resources = tmp_path / "deploy"
        resources.mkdir()
        (resources / "p.yaml").write_text(
            yaml.safe_dump(
                {
                    "apiVersion": "patchgate.io/v1",
                    "kind": "Patch",
                    "metadata": {"name": "fix", "namespace": "default", "generation": 1},
                    "spec": {"package": "", "patchRef": "x.patch", "rollout": 5},
                }
            )
        )

        assert operator_cli.main(["--once", "--dir", str(resources)]) == 0

        assert "default/fix: Failed" in capsys.readouterr().out
        written = yaml.safe_load((resources / "p.yaml").read_text())
        assert written["status"]["phase"] == "Failed"
