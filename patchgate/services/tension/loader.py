"""
Tension rule loading utilities.
"""

import os
from typing import Any, Dict, List

import yaml
from pydantic import ValidationError

from patchgate.core.errors import ResourceNotFoundError
from patchgate.core.logging import get_logger
from patchgate.models.tension import TensionRule, TensionSeverity

logger = get_logger(__name__)

DEFAULT_RULES_PATH = os.path.join(os.path.dirname(__file__), "tension-rules.yaml")


def load_rules_document(rules_path: str) -> Dict[str, Any]:
    """
    Load the tension rule document from YAML.

    Parsed on every call so edits to the file take effect immediately.

    Raises:
        ResourceNotFoundError: If the file does not exist.
    """
    if not os.path.exists(rules_path):
        raise ResourceNotFoundError(f"Tension rules file {rules_path} does not exist")
    with open(rules_path, "r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def get_tension_rules(document: Dict[str, Any]) -> List[TensionRule]:
    """
    Extract rules from ``patch_monitoring.rules`` (or a top-level ``rules``).

    Entries that do not describe a rule (missing fields, CLEAR or unknown
    severity) are logged and skipped.
    """
    raw_rules = (document.get("patch_monitoring") or {}).get("rules")
    if raw_rules is None:
        raw_rules = document.get("rules") or []

    rules = []
    for index, rule_data in enumerate(raw_rules):
        try:
            rule = TensionRule.model_validate(rule_data)
        except ValidationError as e:
            logger.error("Error parsing tension rule #%d: %s", index, e)
            continue
        if rule.severity == TensionSeverity.CLEAR:
            logger.error("Tension rule %s may not use severity CLEAR", rule.name)
            continue
        rules.append(rule)
    return rules
