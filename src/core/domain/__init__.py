"""
Domain models and value objects.

Contains treasury parameters, unit conversion, error taxonomy and snapshots.
"""

from src.core.errors import (
    AccessDenied,
    AlreadyExists,
    AlreadyRegistered,
    ArithmeticFault,
    ArithmeticOverflow,
    ArithmeticUnderflow,
    CollaboratorNotSet,
    Exceeded,
    Frozen,
    InsufficientBalance,
    LeverageExceeded,
    NotFound,
    OperationNotFound,
    OutOfBounds,
    ParameterOutOfBounds,
    TreasuryError,
    ZeroTarget,
)
from src.core.domain.parameters import (
    DEFAULT_EPOCH_LENGTH_BLOCKS,
    DEFAULT_MIN_BUFFER_RENEWAL_FRACTION,
    DEFAULT_MIN_BUFFER_TARGET_FRACTION,
    TreasuryConfig,
    TreasuryParameters,
    update_parameters,
)
from src.core.domain.treasury_snapshot import LossStage, ReportKind, TreasurySnapshot
from src.core.domain.units import (
    DECIMAL_SCALE_FACTOR,
    PRINCIPAL_DECIMALS,
    RESERVE_DECIMALS,
    principal_to_reserve,
    reserve_to_principal,
)

__all__ = [
    # Errors
    "TreasuryError",
    "AccessDenied",
    "NotFound",
    "OperationNotFound",
    "CollaboratorNotSet",
    "AlreadyExists",
    "AlreadyRegistered",
    "ZeroTarget",
    "OutOfBounds",
    "ParameterOutOfBounds",
    "Exceeded",
    "LeverageExceeded",
    "ArithmeticFault",
    "ArithmeticUnderflow",
    "ArithmeticOverflow",
    "Frozen",
    "InsufficientBalance",
    # Parameters
    "DEFAULT_EPOCH_LENGTH_BLOCKS",
    "DEFAULT_MIN_BUFFER_TARGET_FRACTION",
    "DEFAULT_MIN_BUFFER_RENEWAL_FRACTION",
    "TreasuryParameters",
    "TreasuryConfig",
    "update_parameters",
    # Snapshot
    "LossStage",
    "ReportKind",
    "TreasurySnapshot",
    # Units
    "RESERVE_DECIMALS",
    "PRINCIPAL_DECIMALS",
    "DECIMAL_SCALE_FACTOR",
    "reserve_to_principal",
    "principal_to_reserve",
]
