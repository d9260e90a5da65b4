"""
Patch metadata lookup.

Explains why a dependency is patched. A sibling ``.md`` file next to the
patch wins; otherwise the first lines of the patch are scanned for
``# Category:``, ``# Created:`` and ``# Description:`` headers.
"""

import os
import re
from typing import Optional

from patchgate.core.logging import get_logger
from patchgate.models.metadata import PatchMetadata
from patchgate.services.patches.manifest import find_patch_entry

logger = get_logger(__name__)

HEADER_LINES = 10

_CREATED_RE = re.compile(r"Created:\s*(\d{4}-\d{2}-\d{2})")
_CATEGORY_REASONS = {
    "security": "security",
    "features": "feature enhancement",
}


def metadata_path_for(patch_path: str) -> str:
    root, ext = os.path.splitext(patch_path)
    return f"{root}.md" if ext == ".patch" else f"{patch_path}.md"


def parse_metadata_file(content: str) -> PatchMetadata:
    """Parse ``Key: value`` lines of a patch metadata file."""
    values = {}
    for line in content.split("\n"):
        if line.startswith("Reason:"):
            values["reason"] = line[len("Reason:"):].strip()
        elif line.startswith("Date:"):
            values["date"] = line[len("Date:"):].strip()
        elif line.startswith("PR:"):
            values["pr"] = line[len("PR:"):].strip()
        elif line.startswith("Description:"):
            values["description"] = line[len("Description:"):].strip()
        elif line.startswith("Invariants:"):
            values["invariants"] = [
                s.strip() for s in line[len("Invariants:"):].split(",") if s.strip()
            ]
    return PatchMetadata(**values)


def extract_metadata_from_patch(patch_content: str) -> PatchMetadata:
    """Read metadata headers from the top of a patch file."""
    metadata = PatchMetadata()
    for line in patch_content.split("\n")[:HEADER_LINES]:
        if "# Category:" in line:
            category = line.split("# Category:", 1)[1].strip()
            metadata.reason = _CATEGORY_REASONS.get(category, metadata.reason)
        elif "# Created:" in line:
            match = _CREATED_RE.search(line)
            if match:
                metadata.date = match.group(1)
        elif "# Description:" in line:
            metadata.description = line.split("# Description:", 1)[1].strip()
    return metadata


def get_patch_metadata(package: str, manifest_path: str) -> Optional[PatchMetadata]:
    """
    Look up why ``package`` was patched.

    Args:
        package: Bare package name (no version).
        manifest_path: Path to ``package.json``.

    Returns:
        PatchMetadata, or None if the package is not patched or its patch
        file is gone.
    """
    entry = find_patch_entry(package, manifest_path)
    if entry is None:
        logger.info("Package %s is not patched", package)
        return None

    _, patch_path = entry
    md_path = metadata_path_for(patch_path)
    if os.path.exists(md_path):
        try:
            with open(md_path, "r", encoding="utf-8") as f:
                return parse_metadata_file(f.read())
        except (OSError, ValueError) as e:
            logger.warning("Could not parse metadata file %s: %s", md_path, e)

    if os.path.exists(patch_path):
        with open(patch_path, "r", encoding="utf-8", errors="replace") as f:
            return extract_metadata_from_patch(f.read())

    return None
