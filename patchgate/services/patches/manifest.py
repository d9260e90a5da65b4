"""
Package manifest access.

The manifest's ``patchedDependencies`` map (``name@version`` -> patch path)
is an external collaborator; it is only ever read.
"""

import json
import os
from typing import Dict, Optional, Tuple

from patchgate.core.errors import ResourceNotFoundError


def get_patched_dependencies(manifest_path: str) -> Dict[str, str]:
    """
    Read the patched dependency map with paths resolved against the manifest.

    Args:
        manifest_path: Path to ``package.json``.

    Returns:
        Mapping of ``name@version`` to absolute-or-relative patch file path.

    Raises:
        ResourceNotFoundError: If the manifest does not exist.
    """
    if not os.path.exists(manifest_path):
        raise ResourceNotFoundError(f"Package manifest {manifest_path} does not exist")

    with open(manifest_path, "r", encoding="utf-8") as f:
        manifest = json.load(f)

    base_dir = os.path.dirname(manifest_path)
    patched = manifest.get("patchedDependencies") or {}
    return {key: os.path.join(base_dir, path) for key, path in patched.items()}


def find_patch_entry(package: str, manifest_path: str) -> Optional[Tuple[str, str]]:
    """Return ``(name@version, patch_path)`` for a package name, if patched."""
    for key, path in get_patched_dependencies(manifest_path).items():
        if key == package or key.startswith(f"{package}@"):
            return key, path
    return None
