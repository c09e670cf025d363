"""
Persistent storage for agencies, references and snapshots.
"""

from .database import ECFRDatabase

__all__ = ["ECFRDatabase"]
