"""
Data ingestion module for the eCFR API.
"""

from .ecfr_client import ECFRClient

__all__ = ["ECFRClient"]
