"""
Sync orchestration module for eCFR snapshots.
"""

from .sync import SyncOrchestrator

__all__ = ["SyncOrchestrator"]
