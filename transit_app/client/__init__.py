"""Calculation service client."""

from .calculation import CalculationClient

__all__ = ["CalculationClient"]
