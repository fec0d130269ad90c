"""
Fixed-Point — Целочисленная арифметика долей (parts-per-million)

Единственный допустимый способ применять доли-параметры (fee, leverage,
buffer target, buffer renewal) к суммам. Все модули treasury используют
одну и ту же политику округления: floor (вниз), если явно не указано иное.

КРИТИЧЕСКИЕ ИНВАРИАНТЫ:
1. Все суммы — неотрицательные int в диапазоне [0, UINT256_MAX]
2. Underflow → ArithmeticUnderflow, overflow → ArithmeticOverflow
3. Промежуточный результат умножения проверяется на overflow
4. Знаменатель долей — именованная константа PPM_DENOMINATOR, не литерал

ФОРМУЛЫ:
    ppm_of(amount, fraction) = floor(amount × fraction / PPM_DENOMINATOR)
    mul_div_floor(a, b, d)   = floor(a × b / d)
"""

from typing import Final

from src.core.errors import (
    ArithmeticFault,
    ArithmeticOverflow,
    ArithmeticUnderflow,
)

# =============================================================================
# КОНСТАНТЫ
# =============================================================================

# Знаменатель всех долей: 1_000_000 = 100%
PPM_DENOMINATOR: Final[int] = 1_000_000

# Верхняя граница суммы (модель 256-битного беззнакового слова)
UINT256_MAX: Final[int] = 2**256 - 1


# =============================================================================
# ВАЛИДАЦИЯ
# =============================================================================


def validate_amount(value: int, name: str = "amount") -> int:
    """
    Проверка, что сумма — int в диапазоне [0, UINT256_MAX].

    Args:
        value: Проверяемая сумма
        name: Имя параметра для сообщения об ошибке

    Returns:
        value без изменений

    Raises:
        TypeError: Если value не int (bool тоже отклоняется)
        ArithmeticUnderflow: Если value < 0
        ArithmeticOverflow: Если value > UINT256_MAX
    """
    if not isinstance(value, int) or isinstance(value, bool):
        raise TypeError(f"{name} must be int, got {type(value).__name__}")
    if value < 0:
        raise ArithmeticUnderflow(f"{name} must be non-negative, got {value}")
    if value > UINT256_MAX:
        raise ArithmeticOverflow(f"{name} exceeds UINT256_MAX")
    return value


# =============================================================================
# CHECKED OPERATIONS
# =============================================================================


def checked_add(a: int, b: int) -> int:
    """Сложение с проверкой overflow."""
    result = validate_amount(a, "a") + validate_amount(b, "b")
    if result > UINT256_MAX:
        raise ArithmeticOverflow(f"{a} + {b} overflows")
    return result


def checked_sub(a: int, b: int) -> int:
    """
    Вычитание с проверкой underflow.

    Raises:
        ArithmeticUnderflow: Если b > a
    """
    validate_amount(a, "a")
    validate_amount(b, "b")
    if b > a:
        raise ArithmeticUnderflow(f"{a} - {b} underflows")
    return a - b


def checked_mul(a: int, b: int) -> int:
    """Умножение с проверкой overflow."""
    result = validate_amount(a, "a") * validate_amount(b, "b")
    if result > UINT256_MAX:
        raise ArithmeticOverflow(f"{a} * {b} overflows")
    return result


def mul_div_floor(a: int, b: int, denominator: int) -> int:
    """
    floor(a × b / denominator) с проверкой промежуточного overflow.

    Raises:
        ArithmeticFault: Если denominator == 0
    """
    if denominator <= 0:
        raise ArithmeticFault(f"denominator must be positive, got {denominator}")
    return checked_mul(a, b) // denominator


def ppm_of(amount: int, fraction_ppm: int) -> int:
    """
    Применение доли в ppm к сумме (floor).

    Args:
        amount: Сумма (любые единицы)
        fraction_ppm: Доля в parts-per-million

    Returns:
        floor(amount × fraction_ppm / PPM_DENOMINATOR)

    Examples:
        >>> ppm_of(1_000_000, 50_000)
        50000
        >>> ppm_of(0, 50_000)
        0
        >>> ppm_of(19, 50_000)
        0
    """
    return mul_div_floor(amount, fraction_ppm, PPM_DENOMINATOR)
