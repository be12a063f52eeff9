"""Aave v3 lending market support."""
from .adapter import AaveV3Adapter

__all__ = ["AaveV3Adapter"]
