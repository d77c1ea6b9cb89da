"""
Offline-first sync engine for conference content and feature flags.
"""

__version__ = "1.0.0"
