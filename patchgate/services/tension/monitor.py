"""
Tension (amber edge) monitor.

Evaluates the declarative tension rule set against facts extracted from a
patch and produces a severity verdict plus remediation hints.
"""

import os
from typing import Optional

from patchgate.core.errors import ExpressionError, ResourceNotFoundError
from patchgate.core.logging import get_logger
from patchgate.models.tension import (
    RuleEvaluation,
    TensionReport,
    TensionSeverity,
)
from patchgate.services.tension.expression import Condition
from patchgate.services.tension.facts import build_fact_context
from patchgate.services.tension.loader import (
    DEFAULT_RULES_PATH,
    get_tension_rules,
    load_rules_document,
)

logger = get_logger(__name__)


def analyze_patch(
    patch_file_path: str, package_name: str, rules_path: Optional[str] = None
) -> TensionReport:
    """
    Analyze one patch against the tension rules.

    Args:
        patch_file_path: Patch to analyze.
        package_name: Package the patch applies to.
        rules_path: Rule document; defaults to the packaged rule set.

    Returns:
        TensionReport with per-rule outcomes, the highest triggered severity
        (CLEAR when nothing triggers) and the triggered rules' actions.

    Raises:
        ResourceNotFoundError: If the patch file or rules file is missing.
    """
    if not os.path.exists(patch_file_path):
        raise ResourceNotFoundError(f"Patch file {patch_file_path} does not exist")

    rules = get_tension_rules(load_rules_document(rules_path or DEFAULT_RULES_PATH))

    with open(patch_file_path, "r", encoding="utf-8", errors="replace") as f:
        ctx = build_fact_context(f.read(), package_name)
    bindings = ctx.bindings()

    logger.info("Analyzing %s (%s)", package_name, ctx.package_category)
    logger.info("Patch size: %d chars, %d lines", ctx.patch_size, ctx.line_count)

    report = TensionReport(package=package_name)
    for rule in rules:
        try:
            triggered = Condition(rule.condition).evaluate(bindings)
        except ExpressionError as e:
            logger.error("Error evaluating condition %r of %s: %s", rule.condition, rule.name, e)
            triggered = False

        report.violations.append(RuleEvaluation(rule=rule, triggered=triggered))
        if triggered:
            logger.warning("%s tension: %s", rule.severity.value, rule.name)
            if rule.severity.level > report.max_severity.level:
                report.max_severity = rule.severity
            report.recommendations.extend(rule.actions)

    return report
