"""
Core settings, logging, errors and feature flags.
"""
