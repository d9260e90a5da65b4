"""
Invariant configuration loading utilities.

Two optional YAML documents shape which rules run:

- invariant definitions: ``invariants: [{name, enabled}]``
- dependency layers: ``global_rules`` + ``layers`` for the boundary rule
"""

import os
from typing import Any, Dict, List, Optional, Set

import yaml

from patchgate.core.flags import FeatureFlags
from patchgate.core.logging import get_logger
from patchgate.services.invariants.rules import DEFAULT_RULES, OPTIONAL_RULES, InvariantRule

logger = get_logger(__name__)


def load_yaml_document(path: Optional[str]) -> Optional[Dict[str, Any]]:
    """
    Load an optional YAML document.

    Args:
        path: Path to the YAML file, or None.

    Returns:
        The parsed mapping, or None when the path is unset or absent.
    """
    if not path or not os.path.exists(path):
        return None
    with open(path, "r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def _toggled_invariants(definitions: Optional[Dict[str, Any]], enabled: bool) -> Set[str]:
    names = set()
    if not isinstance(definitions, dict):
        return names
    for entry in definitions.get("invariants") or []:
        if isinstance(entry, dict) and entry.get("enabled") is enabled and entry.get("name"):
            names.add(entry["name"])
    return names


def get_disabled_invariants(definitions: Optional[Dict[str, Any]]) -> Set[str]:
    """Names of invariants switched off with ``enabled: false``."""
    return _toggled_invariants(definitions, False)


def get_opted_in_invariants(definitions: Optional[Dict[str, Any]]) -> Set[str]:
    """Names of invariants switched on with ``enabled: true``."""
    return _toggled_invariants(definitions, True)


def get_enabled_rules(
    definitions_path: Optional[str] = None,
    flags: Optional[FeatureFlags] = None,
    rules: Optional[List[InvariantRule]] = None,
) -> List[InvariantRule]:
    """
    Filter the rule set by the definitions document and feature flags.

    Optional rules join the default set only when the document enables them
    by name. An unreadable definitions document falls back to the default
    rules.
    """
    try:
        definitions = load_yaml_document(definitions_path)
    except yaml.YAMLError as e:
        logger.warning("Could not load invariant definitions, using default rules: %s", e)
        definitions = None
    disabled = get_disabled_invariants(definitions)

    if rules is None:
        opted_in = get_opted_in_invariants(definitions)
        rules = DEFAULT_RULES + [r for r in OPTIONAL_RULES if r.name in opted_in]
    rules = list(rules)

    enabled = []
    for rule in rules:
        if rule.name in disabled:
            logger.debug("Invariant %s disabled by definitions", rule.name)
            continue
        if flags is not None and rule.flag and not flags.is_enabled(rule.flag):
            logger.debug("Invariant %s disabled by flag %s", rule.name, rule.flag)
            continue
        enabled.append(rule)
    return enabled
