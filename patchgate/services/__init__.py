"""
Governance services.
"""
