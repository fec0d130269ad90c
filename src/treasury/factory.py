"""Factory — сборка treasury из конфигурации.

- load_treasury_config: dict → JSON Schema контракт → TreasuryConfig
- build_in_memory_collaborators: in-memory collaborators по адресам конфига
- build_treasury: shared state + dispatcher + модули по умолчанию
- Treasury: фасад над dispatcher (call/snapshot/snapshot_json)
"""

import logging
from typing import Any, Dict, Optional, Sequence

from src.core.contracts import TreasurySnapshotValidator, validate_treasury_config
from src.core.domain.parameters import TreasuryConfig
from src.core.domain.treasury_snapshot import TreasurySnapshot
from src.treasury.collaborators import (
    Collaborators,
    InMemoryPrincipalToken,
    InMemoryReserveAsset,
    InMemoryStakingVault,
    ManualClock,
    RecordingCustodian,
)
from src.treasury.dispatcher import Dispatcher
from src.treasury.modules.allocation import (
    AllocationModule,
    leverage_ceiling,
    net_deposits,
    treasury_reserve_balance,
)
from src.treasury.modules.base import CallContext, TreasuryModule
from src.treasury.modules.buffer import BufferModule, buffer_held, buffer_target
from src.treasury.modules.reconciliation import ReconciliationModule, loss_stage
from src.treasury.state import SharedState

logger = logging.getLogger(__name__)


def load_treasury_config(data: Dict[str, Any]) -> TreasuryConfig:
    """
    Загрузка конфигурации из plain dict (например, из JSON файла).

    Raises:
        jsonschema.ValidationError: Нарушение treasury_config контракта
        pydantic.ValidationError: Нарушение cross-field инвариантов (floors)
    """
    validate_treasury_config(data)
    return TreasuryConfig.model_validate(data)


def default_modules() -> list[TreasuryModule]:
    return [AllocationModule(), BufferModule(), ReconciliationModule()]


def build_in_memory_collaborators(config: TreasuryConfig, block: int = 0) -> Collaborators:
    """In-memory collaborators с адресами из конфигурации."""
    reserve_asset = InMemoryReserveAsset(address=config.reserve_asset)
    principal_token = InMemoryPrincipalToken(
        reserve_asset, reserve_holder=config.treasury, address=config.principal_token
    )
    vault = InMemoryStakingVault(principal_token, address=config.vault)
    collaborators = Collaborators(
        reserve_asset=reserve_asset,
        principal_token=principal_token,
        vault=vault,
        clock=ManualClock(block),
    )
    collaborators.add_custodian(
        RecordingCustodian(reserve_asset, treasury=config.treasury, address=config.custodian)
    )
    return collaborators


class Treasury:
    """Фасад: dispatcher + shared state + collaborators."""

    def __init__(self, dispatcher: Dispatcher):
        self.dispatcher = dispatcher

    @property
    def state(self) -> SharedState:
        return self.dispatcher.state

    @property
    def collaborators(self) -> Collaborators:
        return self.dispatcher.collaborators

    def call(self, operation_id: str, caller: str, *args: Any, **kwargs: Any) -> Any:
        return self.dispatcher.dispatch(operation_id, caller, *args, **kwargs)

    def snapshot(self) -> TreasurySnapshot:
        """Снапшот состояния (read-only, без dispatch)."""
        ctx = CallContext(
            caller=self.state.treasury, state=self.state, collaborators=self.collaborators
        )
        token = self.collaborators.principal_token
        return TreasurySnapshot(
            block_number=self.collaborators.clock.current_block(),
            parameters=self.state.parameters,
            custodian_balance=self.state.custodian_balance,
            treasury_reserve_balance=treasury_reserve_balance(ctx),
            net_deposits=net_deposits(ctx),
            leverage_ceiling=leverage_ceiling(ctx),
            principal_total_supply=token.total_supply(),
            buffer_held=buffer_held(ctx),
            buffer_target=buffer_target(ctx),
            vault_principal_balance=self.collaborators.vault.principal_balance(),
            backing_shortfall=token.backing_shortfall(),
            epoch_profit_remaining=self.state.epoch_profit_remaining,
            epoch_profit_start_block=self.state.epoch_profit_start_block,
            loss_stage=loss_stage(ctx),
            operation_ids=self.dispatcher.operation_ids(),
        )

    def snapshot_json(self) -> Dict[str, Any]:
        """
        JSON форма снапшота, проверенная treasury_snapshot контрактом.

        Raises:
            jsonschema.ValidationError: Снапшот нарушает контракт
        """
        return TreasurySnapshotValidator().validate_model(self.snapshot())


def build_treasury(
    config: TreasuryConfig,
    collaborators: Optional[Collaborators] = None,
    modules: Optional[Sequence[TreasuryModule]] = None,
) -> Treasury:
    """
    Сборка treasury: shared state из конфигурации, регистрация модулей
    от имени authority.
    """
    if collaborators is None:
        collaborators = build_in_memory_collaborators(config)
    state = SharedState.from_config(config)
    dispatcher = Dispatcher(state, collaborators)
    for module in default_modules() if modules is None else modules:
        dispatcher.register_module(config.authority, module)
    logger.info(
        "Treasury %s built with %d operations", config.treasury, len(state.dispatch_table)
    )
    return Treasury(dispatcher)
