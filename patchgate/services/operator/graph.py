"""
Reconciliation graph.

Builds the LangGraph StateGraph that moves one Patch resource through its
phases: validate, then apply or fail; a failed apply rolls back any patched
targets before failing.
"""

from langgraph.graph import StateGraph, START, END

from patchgate.services.operator.state import ReconcileState
from patchgate.services.operator.context import Ctx
from patchgate.services.operator.nodes import (
    validate,
    apply,
    rollback,
    mark_applied,
    fail,
    route_after_validation,
    route_after_apply,
)


# 1. Initialize Graph with context schema
workflow = StateGraph(ReconcileState, context_schema=Ctx)

# 2. Add Nodes
workflow.add_node("validate", validate)
workflow.add_node("apply", apply)
workflow.add_node("rollback", rollback)
workflow.add_node("mark_applied", mark_applied)
workflow.add_node("fail", fail)

# 3. Add Edges
workflow.add_edge(START, "validate")
workflow.add_conditional_edges(
    "validate", route_after_validation, {"apply": "apply", "fail": "fail"}
)
workflow.add_conditional_edges(
    "apply",
    route_after_apply,
    {"mark_applied": "mark_applied", "rollback": "rollback", "fail": "fail"},
)
workflow.add_edge("rollback", "fail")
workflow.add_edge("mark_applied", END)
workflow.add_edge("fail", END)

# 4. Compile
reconcile_graph = workflow.compile()
