"""
canary-ctl: manage canary rollouts of patched dependencies.

Exit codes: 0 on success (and for ``check`` when the patch is enabled),
2 for ``check`` when it is not, 1 on any error.
"""

import argparse
import sys
from typing import List, Optional

from patchgate.cli.common import bootstrap, fail
from patchgate.core.errors import PatchGateError
from patchgate.core.logging import get_logger
from patchgate.services.canary.control import CanaryController, DEMOTE_PERCENTAGE
from patchgate.services.canary.store import CanaryMatrixStore

logger = get_logger(__name__)

CHECK_DISABLED_EXIT = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="canary-ctl", description="Manage canary rollouts of patched dependencies."
    )
    parser.add_argument("--matrix", help="Canary matrix file (defaults to settings)")
    parser.add_argument("-v", "--verbose", action="store_true")
    sub = parser.add_subparsers(dest="command", required=True)

    add = sub.add_parser("add", help="Track a package as a canary")
    add.add_argument("package")
    add.add_argument("percentage", nargs="?", type=int)

    sub.add_parser("remove", help="Stop tracking a package").add_argument("package")
    sub.add_parser("promote", help="Promote a package to stable (100%%)").add_argument("package")

    demote = sub.add_parser("demote", help="Send a package back to canary")
    demote.add_argument("package")
    demote.add_argument("percentage", nargs="?", type=int, default=DEMOTE_PERCENTAGE)

    rollout = sub.add_parser("rollout", help="Set the rollout percentage")
    rollout.add_argument("package")
    rollout.add_argument("percentage", type=int)

    sub.add_parser("check", help="Decide whether the patch is enabled").add_argument("package")
    sub.add_parser("list", help="Show every tracked package")
    return parser


def format_table(controller: CanaryController) -> str:
    patches = controller.list()
    if not patches:
        return "No canary patches tracked"
    width = max(len("PACKAGE"), *(len(name) for name in patches))
    lines = [f"{'PACKAGE':<{width}}  {'STAGE':<6}  {'ROLLOUT':>7}  STRATEGY"]
    for name, state in sorted(patches.items()):
        lines.append(
            f"{name:<{width}}  {state.stage.value:<6}  {state.rollout_percentage:>6}%  "
            f"{state.rollout_strategy.value}"
        )
    return "\n".join(lines)


def run(args: argparse.Namespace, controller: CanaryController) -> int:
    command = args.command
    if command == "add":
        state = controller.add(args.package, args.percentage)
        print(f"Added {args.package} to canary at {state.rollout_percentage}%")
    elif command == "remove":
        controller.remove(args.package)
        print(f"Removed {args.package} from canary")
    elif command == "promote":
        controller.promote(args.package)
        print(f"Promoted {args.package} to stable")
    elif command == "demote":
        state = controller.demote(args.package, args.percentage)
        print(f"Demoted {args.package} to canary at {state.rollout_percentage}%")
    elif command == "rollout":
        state = controller.rollout(args.package, args.percentage)
        print(f"{args.package} rollout set to {state.rollout_percentage}% ({state.stage.value})")
    elif command == "check":
        enabled = controller.check(args.package)
        print(f"{args.package}: {'patched' if enabled else 'unpatched'}")
        return 0 if enabled else CHECK_DISABLED_EXIT
    elif command == "list":
        print(format_table(controller))
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    settings, flags = bootstrap(args.verbose)

    if not flags.is_enabled("canary-deployments"):
        return fail("canary deployments are disabled (feature flag canary-deployments)")

    controller = CanaryController(CanaryMatrixStore(args.matrix or settings.CANARY_MATRIX_PATH))
    try:
        return run(args, controller)
    except (PatchGateError, OSError) as e:
        logger.error("canary-ctl %s failed: %s", args.command, e)
        return fail(str(e))


if __name__ == "__main__":
    sys.exit(main())
