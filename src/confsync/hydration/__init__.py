"""
Hydration of flat snapshots into a cross-referenced graph.
"""

from .hydrator import HydratedGraph, HydratedSession, hydrate, start_time_key

__all__ = ["HydratedGraph", "HydratedSession", "hydrate", "start_time_key"]
