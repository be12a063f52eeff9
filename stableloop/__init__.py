"""Stablecoin yield, leverage-loop and liquidation-risk analytics for Aave v3 and Curve."""

__version__ = "0.1.0"
