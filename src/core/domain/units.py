"""
TreasuryUnits — Централизованный модуль конверсии единиц

Единственный допустимый способ преобразований между:
- reserve units (наименьшая единица reserve asset, 6 decimals)
- principal units (наименьшая единица principal token, 18 decimals)

ЗАПРЕЩЕНО смешивать единицы без явного конвертера из этого модуля.

Округление:
- reserve → principal: точное (умножение на DECIMAL_SCALE_FACTOR)
- principal → reserve: floor, остаток меньше DECIMAL_SCALE_FACTOR отбрасывается
"""

from typing import Final

from src.core.math.fixed_point import checked_mul, validate_amount


# =============================================================================
# DECIMALS
# =============================================================================

# Decimals reserve asset (stable)
RESERVE_DECIMALS: Final[int] = 6

# Decimals principal token
PRINCIPAL_DECIMALS: Final[int] = 18

# Фиксированный множитель между единицами: 10^(18 - 6)
DECIMAL_SCALE_FACTOR: Final[int] = 10 ** (PRINCIPAL_DECIMALS - RESERVE_DECIMALS)


# =============================================================================
# КОНВЕРТЕРЫ
# =============================================================================


def reserve_to_principal(amount_reserve: int) -> int:
    """
    Конверсия: reserve units → principal units (точная).

    Args:
        amount_reserve: Сумма в reserve units

    Returns:
        amount_reserve × DECIMAL_SCALE_FACTOR

    Raises:
        ArithmeticOverflow: Если результат выше UINT256_MAX
    """
    return checked_mul(amount_reserve, DECIMAL_SCALE_FACTOR)


def principal_to_reserve(amount_principal: int) -> int:
    """
    Конверсия: principal units → reserve units (floor).

    Остаток меньше DECIMAL_SCALE_FACTOR отбрасывается.
    """
    return validate_amount(amount_principal, "amount_principal") // DECIMAL_SCALE_FACTOR


def format_reserve(amount_reserve: int) -> str:
    """Человекочитаемое представление reserve суммы (для логов)."""
    whole, frac = divmod(amount_reserve, 10**RESERVE_DECIMALS)
    return f"{whole}.{frac:0{RESERVE_DECIMALS}d}"
