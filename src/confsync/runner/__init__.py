"""
Sync pipelines for conference content and feature flags.
"""

from .content_sync import ContentSyncOrchestrator, RefreshOutcome, RefreshReport
from .flag_sync import FeatureFlagSync

__all__ = ["ContentSyncOrchestrator", "RefreshOutcome", "RefreshReport", "FeatureFlagSync"]
