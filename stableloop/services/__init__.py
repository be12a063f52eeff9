"""Service modules"""
from .dashboard import CalculatorReport, CalculatorRequest, Dashboard

__all__ = ["CalculatorReport", "CalculatorRequest", "Dashboard"]
