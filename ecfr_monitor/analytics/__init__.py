"""
Growth analytics over stored snapshot history.
"""

from .velocity import VelocityCalculator, compute_velocity

__all__ = ["VelocityCalculator", "compute_velocity"]
