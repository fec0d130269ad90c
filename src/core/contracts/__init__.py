"""
Contract Validation Module

JSON Schema контракты на границе процесса: конфигурация и снапшот treasury.
"""

from .validators import (
    DEFAULT_SCHEMA_DIR,
    TREASURY_CONFIG,
    TREASURY_SNAPSHOT,
    ContractValidator,
    SchemaLoader,
    TreasuryConfigValidator,
    TreasurySnapshotValidator,
    default_loader,
    format_error,
    validate_treasury_config,
    validate_treasury_snapshot,
)

__all__ = [
    # Constants
    "DEFAULT_SCHEMA_DIR",
    "TREASURY_CONFIG",
    "TREASURY_SNAPSHOT",
    # Classes
    "SchemaLoader",
    "ContractValidator",
    "TreasuryConfigValidator",
    "TreasurySnapshotValidator",
    # Functions
    "default_loader",
    "format_error",
    "validate_treasury_config",
    "validate_treasury_snapshot",
]
