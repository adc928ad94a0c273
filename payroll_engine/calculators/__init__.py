"""
Calculators Package

Provides the calculation steps used by reconciliation runs.
"""

from .accumulator import PayrollAccumulator
from .commission import CommissionResolver
from .interval import IntervalResolver
from .matching import ExtractMatcher
from .split import SplitCalculator

__all__ = [
    "IntervalResolver",
    "CommissionResolver",
    "ExtractMatcher",
    "PayrollAccumulator",
    "SplitCalculator",
]
