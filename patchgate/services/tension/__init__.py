"""
Tension monitoring for dependency patches.
"""

from patchgate.services.tension.expression import Condition, evaluate_condition
from patchgate.services.tension.facts import build_fact_context
from patchgate.services.tension.loader import get_tension_rules, load_rules_document
from patchgate.services.tension.monitor import analyze_patch
from patchgate.services.tension.notifier import SlackNotifier

__all__ = [
    "Condition",
    "SlackNotifier",
    "analyze_patch",
    "build_fact_context",
    "evaluate_condition",
    "get_tension_rules",
    "load_rules_document",
]
