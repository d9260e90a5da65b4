"""Shared startup for the command line tools."""

import sys
from typing import Tuple

from patchgate.core.config import Settings, get_settings
from patchgate.core.flags import FeatureFlags, build_feature_flags
from patchgate.core.logging import setup_logging


def bootstrap(verbose: bool = False) -> Tuple[Settings, FeatureFlags]:
    """Configure logging and build the flag object for one CLI run."""
    settings = get_settings()
    setup_logging(settings.LOG_LEVEL, verbose=verbose)
    return settings, build_feature_flags(settings)


def fail(message: str) -> int:
    print(f"Error: {message}", file=sys.stderr)
    return 1
