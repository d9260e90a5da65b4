"""
Canary rollout state and control.
"""

from patchgate.services.canary.control import CanaryController, should_enable
from patchgate.services.canary.store import CanaryMatrixStore

__all__ = ["CanaryController", "CanaryMatrixStore", "should_enable"]
