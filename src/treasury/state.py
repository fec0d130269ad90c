"""Shared State — единое хранилище конфигурации и счётчиков treasury.

Создаётся один раз при инициализации; далее мутируется только модулями,
в которые dispatcher направил операцию.
"""

from dataclasses import dataclass, field, fields, replace
from typing import TYPE_CHECKING

from src.core.domain.parameters import TreasuryConfig, TreasuryParameters
from src.core.errors import CollaboratorNotSet

if TYPE_CHECKING:
    from src.treasury.modules.base import TreasuryModule


@dataclass
class SharedState:
    """
    Состояние treasury, разделяемое всеми модулями.

    Единицы:
    - custodian_balance: reserve units
    - epoch_profit_remaining: principal units
    - epoch_profit_start_block: номер блока
    """

    # Неизменяемые ссылки на collaborators
    reserve_asset: str
    principal_token: str
    vault: str

    # Адреса
    treasury: str
    authority: str
    warchest: str
    custodian: str

    parameters: TreasuryParameters = field(default_factory=TreasuryParameters)

    # Счётчики
    custodian_balance: int = 0
    epoch_profit_remaining: int = 0
    epoch_profit_start_block: int = 0

    # operation id → handler
    dispatch_table: dict[str, "TreasuryModule"] = field(default_factory=dict)

    def __post_init__(self) -> None:
        for name in ("reserve_asset", "principal_token", "vault", "treasury", "authority"):
            if not getattr(self, name):
                raise CollaboratorNotSet(name)

    @classmethod
    def from_config(cls, config: TreasuryConfig) -> "SharedState":
        return cls(
            reserve_asset=config.reserve_asset,
            principal_token=config.principal_token,
            vault=config.vault,
            treasury=config.treasury,
            authority=config.authority,
            warchest=config.warchest,
            custodian=config.custodian,
            parameters=config.parameters,
        )

    def snapshot(self) -> "SharedState":
        # Handlers в dispatch table не копируются: откатывается только маппинг
        return replace(self, dispatch_table=dict(self.dispatch_table))

    def restore(self, checkpoint: "SharedState") -> None:
        for f in fields(self):
            value = getattr(checkpoint, f.name)
            if f.name == "dispatch_table":
                value = dict(value)
            setattr(self, f.name, value)
