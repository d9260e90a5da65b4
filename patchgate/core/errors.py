"""
Exception types shared by the governance services and CLIs.
"""


class PatchGateError(Exception):
    """Base class for all patchgate errors."""


class ResourceNotFoundError(PatchGateError, FileNotFoundError):
    """A patch file, config document or tracked package entry is missing."""


class CanaryStateError(PatchGateError, ValueError):
    """A canary control precondition failed (range, duplicate, unknown package)."""


class ConcurrentModificationError(PatchGateError):
    """The persisted document changed between read and compare-and-swap write."""

    def __init__(self, path: str, expected: int, actual: int):
        super().__init__(
            f"{path} was modified concurrently (expected version {expected}, found {actual})"
        )
        self.path = path
        self.expected = expected
        self.actual = actual


class ExpressionError(PatchGateError, ValueError):
    """A tension rule condition is not a valid expression in the rule language."""
