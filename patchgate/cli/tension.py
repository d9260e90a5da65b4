"""
patchgate-tension: run the tension monitor on one patch.

Exit code 1 when the verdict is BLOCK.
"""

import argparse
import asyncio
import sys
from typing import List, Optional

from patchgate.cli.common import bootstrap, fail
from patchgate.core.errors import PatchGateError
from patchgate.core.logging import get_logger
from patchgate.models.tension import TensionReport, TensionSeverity
from patchgate.services.tension.monitor import analyze_patch
from patchgate.services.tension.notifier import SlackNotifier

logger = get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="patchgate-tension", description="Detect tension (amber edges) in a patch."
    )
    parser.add_argument("patch_file")
    parser.add_argument("package")
    parser.add_argument("--rules", help="Tension rules file (defaults to settings)")
    parser.add_argument("--details-url", help="Link attached to Slack alerts")
    parser.add_argument("-v", "--verbose", action="store_true")
    return parser


def print_report(report: TensionReport) -> None:
    print(f"Tension analysis for {report.package}: {report.max_severity.value}")
    for rule in report.triggered_rules:
        print(f"  [{rule.severity.value}] {rule.name}")
    if report.recommendations:
        print("Recommendations:")
        for action in report.recommendations:
            print(f"  - {action}")


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    settings, flags = bootstrap(args.verbose)

    if not flags.is_enabled("tension-monitoring"):
        print("Tension monitoring is disabled (feature flag tension-monitoring)")
        return 0

    try:
        report = analyze_patch(
            args.patch_file, args.package, rules_path=args.rules or settings.TENSION_RULES_PATH
        )
    except (PatchGateError, OSError, ValueError) as e:
        logger.error("Tension analysis failed: %s", e)
        return fail(str(e))

    print_report(report)

    if settings.SLACK_WEBHOOK_URL and flags.is_enabled("slack-notifications"):
        notifier = SlackNotifier(settings.SLACK_WEBHOOK_URL, settings.SLACK_SECURITY_CHANNEL)
        asyncio.run(notifier.notify(report, args.details_url))

    return 1 if report.max_severity == TensionSeverity.BLOCK else 0


if __name__ == "__main__":
    sys.exit(main())
