"""
eCFR Regulatory Growth Monitor

Tracks the size of the Code of Federal Regulations per agency across a fixed
set of historical dates and derives a per-agency growth velocity.
"""

__version__ = "1.0.0"
__author__ = "eCFR Growth Monitor"
