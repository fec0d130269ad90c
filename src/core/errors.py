"""
Errors — Таксономия ошибок treasury

Все ошибки локальны для упавшей операции и пробрасываются наверх без
перехвата: операция откатывается целиком (см. src.treasury.journal).

Категории:
- AccessDenied     — неверный caller для authority/custodian операции
- NotFound         — незарегистрированная операция или пустой collaborator
- AlreadyExists    — повторная регистрация operation id
- ZeroTarget       — пустой handler при регистрации/замене
- OutOfBounds      — параметр-фракция вне допустимых границ
- Exceeded         — превышение leverage ceiling
- ArithmeticFault  — underflow/overflow в fixed-point математике
- Frozen           — операция заблокирована активной заморозкой
"""


class TreasuryError(Exception):
    """Базовая ошибка treasury."""


# =============================================================================
# ACCESS
# =============================================================================


class AccessDenied(TreasuryError):
    """
    Вызов authority- или custodian-gated операции чужим адресом.

    Attributes:
        caller: адрес вызывающего
        required_role: требуемая роль ('authority', 'custodian', 'treasury')
    """

    def __init__(self, caller: str, required_role: str):
        self.caller = caller
        self.required_role = required_role
        super().__init__(f"Caller {caller!r} is not the {required_role}")


# =============================================================================
# REGISTRY
# =============================================================================


class NotFound(TreasuryError):
    """Запрошенная сущность не найдена."""


class OperationNotFound(NotFound):
    """Operation id отсутствует в dispatch table."""

    def __init__(self, operation_id: str):
        self.operation_id = operation_id
        super().__init__(f"No handler registered for operation {operation_id!r}")


class CollaboratorNotSet(NotFound):
    """Ссылка на collaborator пустая после инициализации."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Collaborator {name!r} is not set")


class AlreadyExists(TreasuryError):
    """Сущность уже существует."""


class AlreadyRegistered(AlreadyExists):
    """Operation id уже привязан к handler."""

    def __init__(self, operation_id: str):
        self.operation_id = operation_id
        super().__init__(f"Operation {operation_id!r} already has a handler")


class ZeroTarget(TreasuryError, ValueError):
    """Пустой (None) handler при регистрации или замене."""


# =============================================================================
# PARAMETERS / LIMITS
# =============================================================================


class OutOfBounds(TreasuryError, ValueError):
    """Значение вне допустимого диапазона."""


class ParameterOutOfBounds(OutOfBounds):
    """
    Параметр treasury нарушает свои границы (floor/ceiling).

    Attributes:
        parameter: имя параметра
        value: отклонённое значение
    """

    def __init__(self, parameter: str, value: object, reason: str):
        self.parameter = parameter
        self.value = value
        super().__init__(f"{parameter}={value!r} rejected: {reason}")


class Exceeded(TreasuryError):
    """Превышение лимита."""


class LeverageExceeded(Exceeded):
    """custodian_balance + amount > leverage_ceiling."""

    def __init__(self, requested_total: int, ceiling: int):
        self.requested_total = requested_total
        self.ceiling = ceiling
        super().__init__(
            f"Custodian allocation {requested_total} exceeds leverage ceiling {ceiling}"
        )


# =============================================================================
# ARITHMETIC
# =============================================================================


class ArithmeticFault(TreasuryError, ArithmeticError):
    """Нарушение domain целочисленной fixed-point арифметики."""


class ArithmeticUnderflow(ArithmeticFault):
    """Результат вычитания ниже нуля."""


class ArithmeticOverflow(ArithmeticFault):
    """Результат выше UINT256_MAX."""


# =============================================================================
# LEDGER STATE
# =============================================================================


class Frozen(TreasuryError):
    """Операция заблокирована активной стадией заморозки."""


class InsufficientBalance(TreasuryError):
    """Недостаточный баланс или allowance в ledger collaborator."""

    def __init__(self, account: str, available: int, requested: int):
        self.account = account
        self.available = available
        self.requested = requested
        super().__init__(
            f"Account {account!r} has {available}, requested {requested}"
        )
