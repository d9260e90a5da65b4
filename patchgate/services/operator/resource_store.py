"""
Resource stores for the reconciliation operator.

The operator never talks to a cluster directly; it goes through a
``ResourceStore``:

- InMemoryResourceStore: test double / local simulation.
- FileResourceStore: Patch manifests and target manifests as YAML files on
  disk, with status written back into the Patch manifest.
"""

import glob
import os
import re
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Iterable, List, Optional, Set

import yaml

from patchgate.core.logging import get_logger
from patchgate.models.patch_resource import (
    PatchCustomResource,
    Phase,
    Target,
)

logger = get_logger(__name__)

PATCH_KIND = "Patch"
ANNOTATION_PREFIX = "patchgate.io/"

_SKIP_KEY_CONVERSION = {"match_labels", "matchLabels", "labels", "annotations"}


def _camel_to_snake(name: str) -> str:
    return re.sub(r"(?<!^)(?=[A-Z])", "_", name).lower()


def _snake_to_camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.title() for part in rest)


def _convert_keys(obj: Any, convert: Callable[[str], str]) -> Any:
    if isinstance(obj, dict):
        converted = {}
        for key, value in obj.items():
            if key in _SKIP_KEY_CONVERSION:
                converted[convert(key)] = value
            else:
                converted[convert(key)] = _convert_keys(value, convert)
        return converted
    if isinstance(obj, list):
        return [_convert_keys(item, convert) for item in obj]
    return obj


def resource_from_manifest(manifest: Dict[str, Any]) -> PatchCustomResource:
    """Build a PatchCustomResource from a camelCase manifest mapping."""
    data = _convert_keys(manifest, _camel_to_snake)
    data["meta"] = data.pop("metadata", {}) or {}
    data.setdefault("status", {})
    data["status"] = data["status"] or {}
    return PatchCustomResource.model_validate(data)


def resource_to_manifest(resource: PatchCustomResource) -> Dict[str, Any]:
    data = resource.model_dump(mode="json", exclude_none=True)
    data["metadata"] = data.pop("meta")
    manifest = _convert_keys(data, _snake_to_camel)
    return {
        "apiVersion": manifest.pop("apiVersion"),
        "kind": manifest.pop("kind"),
        "metadata": manifest.pop("metadata"),
        **manifest,
    }


def selector_matches(match_labels: Dict[str, str], labels: Dict[str, str]) -> bool:
    """Every selector label must be present with the same value."""
    return bool(match_labels) and all(labels.get(k) == v for k, v in match_labels.items())


def patch_annotations(resource: PatchCustomResource) -> Dict[str, str]:
    spec = resource.spec
    package = f"{spec.package}@{spec.version}" if spec.version else spec.package
    return {
        f"{ANNOTATION_PREFIX}patch": package,
        f"{ANNOTATION_PREFIX}patch-ref": spec.patch_ref,
        f"{ANNOTATION_PREFIX}stage": spec.stage.value,
        f"{ANNOTATION_PREFIX}rollout": str(spec.rollout),
    }


class ResourceStore(ABC):
    """Where Patch resources and their targets live."""

    @abstractmethod
    async def list_patches(self) -> List[PatchCustomResource]:
        """Return every Patch resource currently declared."""

    @abstractmethod
    async def update_status(self, resource: PatchCustomResource) -> None:
        """Persist ``resource.status``."""

    @abstractmethod
    async def find_targets(self, resource: PatchCustomResource) -> List[Target]:
        """Workloads selected by the resource's selectors."""

    @abstractmethod
    async def apply_to_target(self, target: Target, resource: PatchCustomResource) -> None:
        """Roll the patch out to one target."""

    @abstractmethod
    async def revert_target(self, target: Target, resource: PatchCustomResource) -> None:
        """Undo ``apply_to_target``."""


class InMemoryResourceStore(ResourceStore):
    """
    In-memory store.

    Keeps the phase history of every resource so tests can assert on the
    exact sequence of transitions.
    """

    def __init__(
        self,
        resources: Optional[Iterable[PatchCustomResource]] = None,
        targets: Optional[Iterable[Target]] = None,
        failing_targets: Optional[Set[str]] = None,
    ):
        self.resources: Dict[str, PatchCustomResource] = {r.key: r for r in resources or []}
        self.targets: Dict[str, Target] = {t.key: t for t in targets or []}
        self.failing_targets = set(failing_targets or ())
        self.phase_history: Dict[str, List[Phase]] = {}
        self.applied: Dict[str, Set[str]] = {}

    def put(self, resource: PatchCustomResource) -> None:
        self.resources[resource.key] = resource

    async def list_patches(self) -> List[PatchCustomResource]:
        return list(self.resources.values())

    async def update_status(self, resource: PatchCustomResource) -> None:
        self.phase_history.setdefault(resource.key, []).append(resource.status.phase)
        self.resources[resource.key] = resource

    async def find_targets(self, resource: PatchCustomResource) -> List[Target]:
        selectors = resource.spec.selectors
        if selectors is None:
            return []
        return [
            t
            for t in self.targets.values()
            if t.namespace == resource.meta.namespace
            and selector_matches(selectors.match_labels, t.labels)
        ]

    async def apply_to_target(self, target: Target, resource: PatchCustomResource) -> None:
        if target.key in self.failing_targets:
            raise RuntimeError(f"Failed to patch {target.key}")
        target.annotations.update(patch_annotations(resource))
        self.applied.setdefault(resource.key, set()).add(target.key)

    async def revert_target(self, target: Target, resource: PatchCustomResource) -> None:
        for key in patch_annotations(resource):
            target.annotations.pop(key, None)
        self.applied.get(resource.key, set()).discard(target.key)


class FileResourceStore(ResourceStore):
    """
    File-backed store.

    ``resource_dir`` holds Patch manifests (``kind: Patch``); ``target_dir``
    holds workload manifests whose ``metadata.labels`` are matched against
    ``spec.selectors.matchLabels``. Applying a patch writes
    ``patchgate.io/*`` annotations into the target manifest.
    """

    def __init__(self, resource_dir: str, target_dir: Optional[str] = None):
        self.resource_dir = resource_dir
        self.target_dir = target_dir
        self._paths: Dict[str, str] = {}

    async def list_patches(self) -> List[PatchCustomResource]:
        resources = []
        for path in _yaml_files(self.resource_dir):
            for manifest in _scan_manifests(path):
                if manifest.get("kind") != PATCH_KIND:
                    continue
                try:
                    resource = resource_from_manifest(manifest)
                except ValueError as e:
                    logger.error("Skipping invalid Patch manifest in %s: %s", path, e)
                    continue
                self._paths[resource.key] = path
                resources.append(resource)
        return resources

    async def update_status(self, resource: PatchCustomResource) -> None:
        path = self._paths.get(resource.key) or os.path.join(
            self.resource_dir, f"{resource.meta.namespace}-{resource.meta.name}.yaml"
        )
        _write_manifest(path, resource_to_manifest(resource))
        self._paths[resource.key] = path

    async def find_targets(self, resource: PatchCustomResource) -> List[Target]:
        selectors = resource.spec.selectors
        if not self.target_dir or selectors is None:
            return []
        targets = []
        for path in _yaml_files(self.target_dir):
            for manifest in _scan_manifests(path):
                meta = manifest.get("metadata") or {}
                target = Target(
                    name=meta.get("name", os.path.basename(path)),
                    namespace=meta.get("namespace", "default"),
                    labels=meta.get("labels") or {},
                    annotations=meta.get("annotations") or {},
                    source=path,
                )
                if target.namespace == resource.meta.namespace and selector_matches(
                    selectors.match_labels, target.labels
                ):
                    targets.append(target)
        return targets

    async def apply_to_target(self, target: Target, resource: PatchCustomResource) -> None:
        logger.info("Patching target: %s", target.key)
        self._edit_annotations(target, lambda ann: ann.update(patch_annotations(resource)))

    async def revert_target(self, target: Target, resource: PatchCustomResource) -> None:
        logger.info("Reverting target: %s", target.key)

        def drop(annotations: Dict[str, Any]) -> None:
            for key in patch_annotations(resource):
                annotations.pop(key, None)

        self._edit_annotations(target, drop)

    def _edit_annotations(self, target: Target, edit: Callable[[Dict[str, Any]], None]) -> None:
        if not target.source:
            raise ValueError(f"Target {target.key} has no backing manifest")
        manifest = _read_manifests(target.source)[0]
        annotations = manifest.setdefault("metadata", {}).setdefault("annotations", {})
        edit(annotations)
        target.annotations = dict(annotations)
        _write_manifest(target.source, manifest)


def _yaml_files(directory: str) -> List[str]:
    if not os.path.isdir(directory):
        return []
    return sorted(
        glob.glob(os.path.join(directory, "*.yaml")) + glob.glob(os.path.join(directory, "*.yml"))
    )


def _read_manifests(path: str) -> List[Dict[str, Any]]:
    with open(path, "r", encoding="utf-8") as f:
        return [doc for doc in yaml.safe_load_all(f) if isinstance(doc, dict)]


def _scan_manifests(path: str) -> List[Dict[str, Any]]:
    """Like ``_read_manifests`` but skips files that are not valid YAML."""
    try:
        return _read_manifests(path)
    except yaml.YAMLError as e:
        logger.error("Skipping unparsable manifest %s: %s", path, e)
        return []


def _write_manifest(path: str, manifest: Dict[str, Any]) -> None:
    tmp_path = f"{path}.tmp"
    with open(tmp_path, "w", encoding="utf-8") as f:
        yaml.safe_dump(manifest, f, sort_keys=False)
    os.replace(tmp_path, path)
