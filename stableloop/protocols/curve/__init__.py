"""Curve stable pool support."""
from .adapter import CurveAdapter
from .analytics import ObservationCache
from .convex import ConvexBoostSource
from .resolver import CurvePoolResolver

__all__ = ["ConvexBoostSource", "CurveAdapter", "CurvePoolResolver", "ObservationCache"]
