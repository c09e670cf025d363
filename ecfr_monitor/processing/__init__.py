"""
Metric extraction for fetched eCFR content.
"""

from .metrics import clean_text, count_words, extract_metrics, fingerprint

__all__ = ["clean_text", "count_words", "extract_metrics", "fingerprint"]
