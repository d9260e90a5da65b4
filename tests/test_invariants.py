"""
Tests for the invariant rules, the rule engine and the patch validation service.
"""

import pytest

from patchgate.core.errors import ResourceNotFoundError
from patchgate.models.invariant import Severity
from patchgate.services.invariants.engine import VALIDATION_ERROR, validate
from patchgate.services.invariants.loader import get_enabled_rules
from patchgate.services.invariants.rules import (
    DEFAULT_RULES,
    OPTIONAL_RULES,
    InvariantRule,
    extract_package_name,
    strip_version,
)
from patchgate.services.invariants.validation import (
    PATCH_FILE_EXISTS,
    audit_patches,
    inspect_patch_file,
    validate_patch,
)

LAYERS = {
    "global_rules": {"enforce_layer_boundaries": True},
    "layers": {
        "core": {"packages": ["lodash"], "allowed_imports": []},
        "ui": {"packages": ["react*"], "allowed_imports": ["core"]},
    },
}


def names(violations):
    return [v.invariant for v in violations]


class TestRules:
    def test_default_rule_order(self):
        assert [r.name for r in DEFAULT_RULES] == [
            "no-direct-process-env",
            "cryptographic-integrity",
            "dependency-boundary",
            "no-eval-usage",
            "no-global-mutation",
        ]

    def test_clean_patch(self):
        assert validate(DEFAULT_RULES, "+const x = 1;\n", "left-pad@1.3.0") == []

    def test_eval_is_critical(self):
        violations = validate(DEFAULT_RULES, "+eval(payload)\n", "left-pad@1.3.0")
        assert names(violations) == ["no-eval-usage"]
        assert violations[0].severity == Severity.CRITICAL

    def test_new_function_is_flagged(self):
        assert names(validate(DEFAULT_RULES, "+new Function('a', 'b')", "x")) == ["no-eval-usage"]

    def test_weak_hash_only_matters_for_security_packages(self):
        patch = "+const h = md5(data);\n"
        assert validate(DEFAULT_RULES, patch, "left-pad@1.3.0") == []
        violations = validate(DEFAULT_RULES, patch, "jsonwebtoken-crypto@2.0.0")
        assert names(violations) == ["cryptographic-integrity"]
        assert violations[0].severity == Severity.CRITICAL

    def test_process_env_growth(self):
        patch = "+const k = process.env.API_KEY;\n"
        assert names(validate(DEFAULT_RULES, patch, "x")) == ["no-direct-process-env"]
        # Same count as the original text is fine.
        assert validate(DEFAULT_RULES, patch, "x", original_text=patch) == []

    def test_global_mutation(self):
        assert names(validate(DEFAULT_RULES, "+window.foo = 1;", "x")) == ["no-global-mutation"]
        assert names(validate(DEFAULT_RULES, "+globalThis['bar'] = 2;", "x")) == [
            "no-global-mutation"
        ]
        assert validate(DEFAULT_RULES, "+if (window.foo == 1) {}", "x") == []

    def test_violations_follow_rule_order(self):
        patch = "+window.x = eval(process.env.SECRET);\n"
        assert names(validate(DEFAULT_RULES, patch, "x")) == [
            "no-direct-process-env",
            "no-eval-usage",
            "no-global-mutation",
        ]

    def test_raising_rule_becomes_validation_error(self):
        def boom(ctx):
            raise RuntimeError("kaboom")

        rules = [
            InvariantRule("explodes", "always raises", Severity.CRITICAL, boom),
            *DEFAULT_RULES,
        ]
        violations = validate(rules, "+eval(x)", "x")
        assert names(violations) == [VALIDATION_ERROR, "no-eval-usage"]
        assert violations[0].severity == Severity.HIGH
        assert violations[0].description == "Failed to validate invariant explodes: kaboom"


class TestLoggingConsistency:
    @pytest.mark.parametrize(
        "patch, package, compliant",
        [
            ("+const a = 1;\n", "left-pad@1.3.0", True),
            ("+console.log('hit');\n", "left-pad@1.3.0", False),
            ("+console.trace ();\n", "left-pad@1.3.0", False),
            ("+console.error('boom');\n", "left-pad@1.3.0", True),
            ("+console.log('a');\n+logger.info('b');\n", "left-pad@1.3.0", True),
            ("+console.debug('a');\n", "my-lib.test.utils@1.0.0", True),
            ("+console.log('a');\n", "debug.js@1.0.0", True),
        ],
    )
    def test_console_calls(self, patch, package, compliant):
        violations = validate(OPTIONAL_RULES, patch, package)
        assert (violations == []) is compliant

    def test_violation_is_low_severity(self):
        [violation] = validate(OPTIONAL_RULES, "+console.log(1);\n", "x")
        assert violation.invariant == "logging-consistency"
        assert violation.severity == Severity.LOW


class TestDependencyBoundary:
    def test_disallowed_import(self):
        patch = "+import React from 'react';\n"
        violations = validate(DEFAULT_RULES, patch, "lodash@4.17.21", layers=LAYERS)
        assert names(violations) == ["dependency-boundary"]

    def test_allowed_import(self):
        patch = "+const _ = require('lodash/fp');\n"
        assert validate(DEFAULT_RULES, patch, "react-dom@18.0.0", layers=LAYERS) == []

    def test_enforcement_off(self):
        layers = {**LAYERS, "global_rules": {"enforce_layer_boundaries": False}}
        patch = "+import React from 'react';\n"
        assert validate(DEFAULT_RULES, patch, "lodash@4.17.21", layers=layers) == []

    @pytest.mark.parametrize(
        "specifier, expected",
        [("@scope/pkg/sub", "@scope/pkg"), ("pkg/sub", "pkg"), ("./local", None)],
    )
    def test_extract_package_name(self, specifier, expected):
        assert extract_package_name(specifier) == expected

    def test_strip_version(self):
        assert strip_version("@scope/pkg@1.0.0") == "@scope/pkg"
        assert strip_version("@scope/pkg") == "@scope/pkg"
        assert strip_version("lodash@4.17.21") == "lodash"


class TestRuleSelection:
    def test_flag_disables_rule(self, flags):
        flags.set_override("crypto-integrity", False)
        rules = get_enabled_rules(flags=flags)
        assert "cryptographic-integrity" not in [r.name for r in rules]

    def test_definitions_document(self, tmp_path):
        path = tmp_path / "invariants.yml"
        path.write_text("invariants:\n  - name: no-eval-usage\n    enabled: false\n")
        rules = get_enabled_rules(str(path))
        assert [r.name for r in rules] == [
            "no-direct-process-env",
            "cryptographic-integrity",
            "dependency-boundary",
            "no-global-mutation",
        ]


    def test_optional_rule_is_off_by_default(self):
        assert "logging-consistency" not in [r.name for r in get_enabled_rules()]

    def test_definitions_document_enables_optional_rule(self, tmp_path):
        path = tmp_path / "invariants.yml"
        path.write_text("invariants:\n  - name: logging-consistency\n    enabled: true\n")
        rules = get_enabled_rules(str(path))
        assert [r.name for r in rules][-1] == "logging-consistency"
        assert len(rules) == len(DEFAULT_RULES) + 1


class TestValidatePatch:
    def test_missing_file(self, tmp_path):
        result = validate_patch("left-pad", str(tmp_path / "missing.patch"))
        assert result.is_valid is False
        assert len(result.violations) == 1
        assert result.violations[0].invariant == PATCH_FILE_EXISTS
        assert result.violations[0].severity == Severity.CRITICAL

    def test_valid_file(self, tmp_path):
        patch = tmp_path / "ok.patch"
        patch.write_text("+module.exports = 1;\n")
        result = validate_patch("left-pad", str(patch))
        assert result.is_valid is True
        assert result.violations == []


class TestAudit:
    def test_exit_code_on_critical(self, tmp_path, write_manifest):
        (tmp_path / "patches").mkdir()
        (tmp_path / "patches" / "good.patch").write_text("+const a = 1;\n")
        (tmp_path / "patches" / "bad.patch").write_text("+eval(a)\n")
        (tmp_path / "patches" / "high.patch").write_text("+window.a = 1;\n")
        manifest = write_manifest(
            {
                "good@1.0.0": "patches/good.patch",
                "bad@1.0.0": "patches/bad.patch",
                "high@1.0.0": "patches/high.patch",
            }
        )

        report = audit_patches(str(manifest))

        assert [r.package for r in report.valid] == ["good@1.0.0"]
        assert [r.package for r in report.critical] == ["bad@1.0.0"]
        assert [r.package for r in report.high] == ["high@1.0.0"]
        assert report.exit_code == 1

    def test_high_only_is_non_blocking(self, tmp_path, write_manifest):
        (tmp_path / "high.patch").write_text("+window.a = 1;\n")
        report = audit_patches(str(write_manifest({"high@1.0.0": "high.patch"})))
        assert report.exit_code == 0

    def test_missing_manifest(self, tmp_path):
        with pytest.raises(ResourceNotFoundError):
            audit_patches(str(tmp_path / "package.json"))


class TestInspectPatchFile:
    def test_unified_diff(self, tmp_path):
        patch = tmp_path / "a.patch"
        patch.write_text("diff --git a/x b/x\n@@ -1 +1 @@\n-a\n+b\n")
        inspection = inspect_patch_file("a", str(patch))
        assert inspection.exists and inspection.has_diff and inspection.has_hunks
        assert inspection.issues == []

    def test_not_a_diff(self, tmp_path):
        patch = tmp_path / "a.patch"
        patch.write_text("hello")
        assert len(inspect_patch_file("a", str(patch)).issues) == 2
