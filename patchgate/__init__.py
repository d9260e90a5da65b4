"""
PatchGate: dependency patch governance.
"""
