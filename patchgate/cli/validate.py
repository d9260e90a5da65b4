"""
patchgate-validate: invariant audit and patch inspection.

Subcommands:
    audit                     validate every patched dependency (default)
    patch <package> <file>    validate one patch file
    inspect <package> <file>  check a patch file looks like a unified diff
    why <package>             explain why a package is patched
"""

import argparse
import sys
from typing import List, Optional

from patchgate.cli.common import bootstrap, fail
from patchgate.core.errors import PatchGateError
from patchgate.core.logging import get_logger
from patchgate.models.invariant import Severity, ValidationResult
from patchgate.services.invariants.loader import get_enabled_rules, load_yaml_document
from patchgate.services.invariants.validation import (
    audit_patches,
    inspect_patch_file,
    validate_patch,
)
from patchgate.services.patches.metadata import get_patch_metadata

logger = get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="patchgate-validate", description="Validate dependency patches against invariants."
    )
    parser.add_argument("--manifest", help="Package manifest (defaults to settings)")
    parser.add_argument("-v", "--verbose", action="store_true")
    sub = parser.add_subparsers(dest="command")

    sub.add_parser("audit", help="Validate every patched dependency")

    patch = sub.add_parser("patch", help="Validate a single patch file")
    patch.add_argument("package")
    patch.add_argument("patch_file")

    inspect = sub.add_parser("inspect", help="Check patch file format")
    inspect.add_argument("package")
    inspect.add_argument("patch_file")

    why = sub.add_parser("why", help="Explain why a package is patched")
    why.add_argument("package")
    return parser


def print_result(result: ValidationResult) -> None:
    if result.is_valid:
        print(f"  OK  {result.package}")
        return
    print(f"  FAIL {result.package}")
    for v in result.violations:
        print(f"       [{v.severity.value.upper()}] {v.invariant}: {v.description}")


def run_audit(manifest: str, rules, layers) -> int:
    report = audit_patches(manifest, rules=rules, layers=layers)
    print(f"Validated {len(report.results)} patched dependencies")
    for result in report.results:
        print_result(result)
    print(
        f"\nValid: {len(report.valid)}  High: {len(report.high)}  Critical: {len(report.critical)}"
    )
    if report.exit_code:
        print("Critical invariant violations found", file=sys.stderr)
    return report.exit_code


def run_patch(package: str, patch_file: str, rules, layers) -> int:
    result = validate_patch(package, patch_file, rules=rules, layers=layers)
    print_result(result)
    return 1 if result.has_severity(Severity.CRITICAL) else 0


def run_inspect(package: str, patch_file: str) -> int:
    inspection = inspect_patch_file(package, patch_file)
    if not inspection.exists:
        return fail(f"Patch file {patch_file} does not exist")
    print(f"{package}: {inspection.size} bytes, {inspection.lines} lines")
    for issue in inspection.issues:
        print(f"  warning: {issue}")
    return 0


def run_why(package: str, manifest: str) -> int:
    metadata = get_patch_metadata(package, manifest)
    if metadata is None:
        return fail(f"Could not find patch information for {package}")
    print(f"{package} was patched:")
    print(f"- Reason: {metadata.reason}")
    print(f"- Date: {metadata.date}")
    if metadata.pr:
        print(f"- PR: {metadata.pr}")
    if metadata.description:
        print(f"- Description: {metadata.description}")
    print(f"- Invariants: {', '.join(metadata.invariants)}")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    settings, flags = bootstrap(args.verbose)
    manifest = args.manifest or settings.PACKAGE_MANIFEST_PATH
    command = args.command or "audit"

    try:
        if command == "inspect":
            return run_inspect(args.package, args.patch_file)
        if command == "why":
            return run_why(args.package, manifest)

        if not flags.is_enabled("invariant-validation"):
            print("Invariant validation is disabled (feature flag invariant-validation)")
            return 0
        rules = get_enabled_rules(settings.INVARIANT_DEFINITIONS_PATH, flags)
        layers = load_yaml_document(settings.DEPENDENCY_LAYERS_PATH)
        if command == "patch":
            return run_patch(args.package, args.patch_file, rules, layers)
        return run_audit(manifest, rules, layers)
    except (PatchGateError, OSError, ValueError) as e:
        logger.error("patchgate-validate %s failed: %s", command, e)
        return fail(str(e))


if __name__ == "__main__":
    sys.exit(main())
