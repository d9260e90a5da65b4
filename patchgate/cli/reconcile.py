"""
patchgate-operator: reconcile Patch resources from a manifest directory.
"""

import argparse
import asyncio
import signal
import sys
from typing import List, Optional

from patchgate.cli.common import bootstrap
from patchgate.core.logging import get_logger
from patchgate.services.invariants.loader import get_enabled_rules
from patchgate.services.operator.operator import PatchOperator
from patchgate.services.operator.resource_store import FileResourceStore
from patchgate.services.operator.signing import CosignVerifier

logger = get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="patchgate-operator", description="Reconcile Patch resources."
    )
    parser.add_argument("--once", action="store_true", help="Run a single pass and exit")
    parser.add_argument("--dir", help="Directory of Patch manifests (defaults to settings)")
    parser.add_argument("--targets", help="Directory of target manifests (defaults to settings)")
    parser.add_argument("--patch-root", help="Base directory for relative patch refs")
    parser.add_argument("--interval", type=float, help="Polling interval in seconds")
    parser.add_argument("-v", "--verbose", action="store_true")
    return parser


async def serve(operator: PatchOperator) -> None:
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, operator.stop)
        except NotImplementedError:
            # Windows event loops have no signal handler support.
            pass
    await operator.run()


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    settings, flags = bootstrap(args.verbose)

    store = FileResourceStore(
        args.dir or settings.OPERATOR_RESOURCE_DIR,
        args.targets or settings.OPERATOR_TARGET_DIR,
    )
    operator = PatchOperator(
        store,
        CosignVerifier(settings.COSIGN_BINARY, settings.COSIGN_TIMEOUT_SECONDS),
        flags,
        interval=args.interval or settings.OPERATOR_INTERVAL_SECONDS,
        rules=get_enabled_rules(settings.INVARIANT_DEFINITIONS_PATH, flags),
        patch_root=args.patch_root,
    )

    if args.once:
        reconciled = asyncio.run(operator.reconcile_once())
        for resource in reconciled:
            print(f"{resource.key}: {resource.status.phase.value}")
        return 0

    asyncio.run(serve(operator))
    return 0


if __name__ == "__main__":
    sys.exit(main())
