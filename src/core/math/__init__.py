"""
Core math modules для treasury

Целочисленная fixed-point арифметика с единой политикой округления.
"""

from src.core.math.fixed_point import (
    PPM_DENOMINATOR,
    UINT256_MAX,
    checked_add,
    checked_mul,
    checked_sub,
    mul_div_floor,
    ppm_of,
    validate_amount,
)

__all__ = [
    # Constants
    "PPM_DENOMINATOR",
    "UINT256_MAX",
    # Functions
    "checked_add",
    "checked_sub",
    "checked_mul",
    "mul_div_floor",
    "ppm_of",
    "validate_amount",
]
