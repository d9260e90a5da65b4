"""
Patched dependency manifest, metadata and analytics.
"""
