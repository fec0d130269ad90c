"""
TreasurySnapshot — Снапшот состояния treasury

Immutable Pydantic модель, полностью совместимая с JSON Schema
(contracts/schema/treasury_snapshot.json).

Суммы сериализуются строками: principal units (18 decimals) выходят за
пределы безопасных JSON чисел.
"""

from enum import Enum

from pydantic import BaseModel, Field, field_serializer

from .parameters import TreasuryParameters


# =============================================================================
# ENUMS
# =============================================================================


class LossStage(str, Enum):
    """
    Стадия поглощения убытка (производная от флагов заморозки collaborators).

    - SOLVENT: заморозок нет
    - VAULT_FROZEN_FOR_DEPOSITS: buffer исчерпан, vault закрыт для депозитов
    - BACKING_REDUCED_FULLY_FROZEN: backing снижен, principal token заморожен
    """

    SOLVENT = "SOLVENT"
    VAULT_FROZEN_FOR_DEPOSITS = "VAULT_FROZEN_FOR_DEPOSITS"
    BACKING_REDUCED_FULLY_FROZEN = "BACKING_REDUCED_FULLY_FROZEN"


class ReportKind(str, Enum):
    """Ветка reconciliation для одного report."""

    NO_CHANGE = "NO_CHANGE"
    PROFIT = "PROFIT"
    LOSS = "LOSS"


# =============================================================================
# SNAPSHOT MODEL
# =============================================================================


class TreasurySnapshot(BaseModel):
    """
    Снапшот treasury для мониторинга и аудита.

    Содержит:
    - Параметры (parameters)
    - Балансы (reserve units и principal units)
    - Счётчики epoch распределения
    - Текущую стадию заморозки
    - Зарегистрированные operation ids
    """

    schema_version: str = Field("1", pattern="^1$", description="Версия схемы")
    block_number: int = Field(..., ge=0, description="Блок снапшота")

    parameters: TreasuryParameters

    # Reserve units
    custodian_balance: int = Field(..., ge=0, description="Последний отчёт custodian")
    treasury_reserve_balance: int = Field(..., ge=0, description="Reserve на treasury")
    net_deposits: int = Field(..., ge=0, description="Reserve + custodian balance")
    leverage_ceiling: int = Field(..., ge=0, description="Лимит аллокации custodian")

    # Principal units
    principal_total_supply: int = Field(..., ge=0)
    buffer_held: int = Field(..., ge=0)
    buffer_target: int = Field(..., ge=0)
    vault_principal_balance: int = Field(..., ge=0)
    backing_shortfall: int = Field(..., ge=0)
    epoch_profit_remaining: int = Field(..., ge=0)
    epoch_profit_start_block: int = Field(..., ge=0)

    loss_stage: LossStage
    operation_ids: list[str] = Field(default_factory=list)

    model_config = {"frozen": True}

    @field_serializer(
        "custodian_balance",
        "treasury_reserve_balance",
        "net_deposits",
        "leverage_ceiling",
        "principal_total_supply",
        "buffer_held",
        "buffer_target",
        "vault_principal_balance",
        "backing_shortfall",
        "epoch_profit_remaining",
        when_used="json",
    )
    def _amount_as_string(self, value: int) -> str:
        return str(value)
