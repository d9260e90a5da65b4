"""
Canary matrix persistence.

The matrix is a single YAML document holding the per-package rollout map
and the global defaults. Writes are atomic (temp file + rename) and carry a
monotonically increasing ``version`` so callers can compare-and-swap; an
exclusive lock on a sidecar ``.lock`` file serializes writers across
processes.
"""

import os
import sys
import tempfile
from contextlib import contextmanager
from typing import Any, Callable, Dict, Iterator, Optional, TypeVar

import yaml

from patchgate.core.errors import ConcurrentModificationError
from patchgate.core.logging import get_logger
from patchgate.models.canary import (
    CanaryGlobals,
    CanaryMatrix,
    CanaryPatchState,
)

logger = get_logger(__name__)

T = TypeVar("T")

# Document key -> CanaryPatchState attribute
_STATE_KEYS = {
    "stage": "stage",
    "rolloutPercentage": "rollout_percentage",
    "rolloutStrategy": "rollout_strategy",
    "monitoringWindow": "monitoring_window",
    "rollbackOnErrors": "rollback_on_errors",
    "rollbackThreshold": "rollback_threshold",
}
_LEGACY_STATE_KEYS = {"rollout": "rollout_percentage"}


def state_from_document(data: Dict[str, Any]) -> CanaryPatchState:
    values = {}
    for doc_key, attr in {**_LEGACY_STATE_KEYS, **_STATE_KEYS}.items():
        if doc_key in (data or {}):
            values[attr] = data[doc_key]
    return CanaryPatchState.model_validate(values)


def state_to_document(state: CanaryPatchState) -> Dict[str, Any]:
    dumped = state.model_dump(mode="json")
    return {doc_key: dumped[attr] for doc_key, attr in _STATE_KEYS.items()}


def matrix_from_document(document: Optional[Dict[str, Any]]) -> CanaryMatrix:
    document = document or {}
    return CanaryMatrix(
        version=int(document.get("version") or 0),
        patches={
            name: state_from_document(data)
            for name, data in (document.get("patches") or {}).items()
        },
        global_defaults=CanaryGlobals.model_validate(document.get("global") or {}),
    )


def matrix_to_document(matrix: CanaryMatrix) -> Dict[str, Any]:
    return {
        "version": matrix.version,
        "patches": {
            name: state_to_document(state) for name, state in matrix.patches.items()
        },
        "global": matrix.global_defaults.model_dump(mode="json"),
    }


@contextmanager
def _exclusive_lock(lock_path: str) -> Iterator[None]:
    """Hold an exclusive advisory lock on ``lock_path`` for the block."""
    with open(lock_path, "a+") as fh:
        if sys.platform == "win32":
            import msvcrt

            msvcrt.locking(fh.fileno(), msvcrt.LK_LOCK, 1)
            try:
                yield
            finally:
                msvcrt.locking(fh.fileno(), msvcrt.LK_UNLCK, 1)
        else:
            import fcntl

            fcntl.flock(fh, fcntl.LOCK_EX)
            try:
                yield
            finally:
                fcntl.flock(fh, fcntl.LOCK_UN)


class CanaryMatrixStore:
    """Load/save the canary matrix document at ``path``."""

    def __init__(self, path: str):
        self.path = path
        self.lock_path = f"{path}.lock"

    def load(self) -> CanaryMatrix:
        """Read the document; a missing file is an empty matrix with default globals."""
        if not os.path.exists(self.path):
            logger.debug("Canary matrix %s not found, starting empty", self.path)
            return CanaryMatrix()
        with open(self.path, "r", encoding="utf-8") as f:
            return matrix_from_document(yaml.safe_load(f))

    def save(self, matrix: CanaryMatrix, expected_version: Optional[int] = None) -> CanaryMatrix:
        """
        Persist the matrix, bumping its version.

        Args:
            matrix: Matrix to write. Its ``version`` is updated in place.
            expected_version: When set, the write only happens if the stored
                version still equals this value.

        Raises:
            ConcurrentModificationError: On a version mismatch.
        """
        self._ensure_parent()
        with _exclusive_lock(self.lock_path):
            return self._save_locked(matrix, expected_version)

    def update(self, mutator: Callable[[CanaryMatrix], T]) -> T:
        """
        Read-modify-write under the lock.

        ``mutator`` receives the current matrix and may raise to abort; nothing
        is written in that case.
        """
        self._ensure_parent()
        with _exclusive_lock(self.lock_path):
            matrix = self.load()
            result = mutator(matrix)
            self._save_locked(matrix, matrix.version)
            return result

    def _save_locked(self, matrix: CanaryMatrix, expected_version: Optional[int]) -> CanaryMatrix:
        current = self._stored_version()
        if expected_version is not None and current != expected_version:
            raise ConcurrentModificationError(self.path, expected_version, current)

        matrix.version = current + 1
        directory = os.path.dirname(os.path.abspath(self.path))
        fd, tmp_path = tempfile.mkstemp(prefix=".canary-matrix-", suffix=".tmp", dir=directory)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                yaml.safe_dump(matrix_to_document(matrix), f, sort_keys=False)
            os.replace(tmp_path, self.path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise

        logger.debug("Saved canary matrix %s at version %d", self.path, matrix.version)
        return matrix

    def _stored_version(self) -> int:
        if not os.path.exists(self.path):
            return 0
        return self.load().version

    def _ensure_parent(self) -> None:
        parent = os.path.dirname(os.path.abspath(self.path))
        os.makedirs(parent, exist_ok=True)
