"""Reconciliation Module — profit/loss waterfall по отчёту custodian.

report(new_balance):
    delta = new_balance - custodian_balance   (custodian_balance пишется ровно раз)

    delta == 0 → no-op
    delta > 0  → PROFIT:
        fee = floor(delta × fee_fraction / PPM)       → mint principal в warchest
        net = delta - fee
        buffer top-up из net                           → mint principal в treasury
        восстановление backing (≤ shortfall, ≤ остаток, ≤ reserve headroom)
        остаток                                        → mint principal в vault
        epoch_profit = остаток + carryover прошлого epoch, epoch перезапускается
    delta < 0  → LOSS (principal units):
        Stage 1: buffer
        Stage 2: vault holdings + freeze депозитов vault (всегда, если дошло до vault)
        Stage 3: снижение backing + полная заморозка principal token

Стадии однонаправлены внутри report; снятие заморозок — только unfreeze()
от authority. Прибыльные отчёты заморозки не снимают.

Buffer top-up и slash вызываются через dispatch table (top_up_principal,
slash_principal) от имени treasury; планы строятся из того, что вернул handler.
Записи epoch state выполняются до mint fee и распределения; уведомление vault —
последним.
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Mapping, Optional

from src.core.domain.parameters import update_parameters
from src.core.domain.treasury_snapshot import LossStage, ReportKind
from src.core.domain.units import format_reserve, reserve_to_principal
from src.core.math.fixed_point import (
    checked_add,
    checked_sub,
    mul_div_floor,
    ppm_of,
    validate_amount,
)
from src.treasury.modules.allocation import net_deposits
from src.treasury.modules.base import (
    CallContext,
    TreasuryModule,
    call_module,
    require_authority,
    require_custodian,
)

logger = logging.getLogger(__name__)


# =============================================================================
# PLANS
# =============================================================================


@dataclass(frozen=True)
class ProfitPlan:
    """
    Распределение прибыли.

    Единицы: profit, fee, net_profit — reserve units; остальное — principal units.
    """

    profit: int
    fee: int
    net_profit: int
    buffer_minted: int
    backing_restored: int
    distributed: int
    carryover: int
    epoch_profit: int


@dataclass(frozen=True)
class LossPlan:
    """Поглощение убытка (все суммы в principal units)."""

    loss: int
    buffer_burned: int
    vault_burned: int
    backing_reduction: int
    stage: LossStage


def compute_fee(profit_reserve: int, fee_ppm: int) -> int:
    """fee = floor(profit × fee_ppm / PPM_DENOMINATOR); fee(0) = 0."""
    return ppm_of(profit_reserve, fee_ppm)


def plan_profit_distribution(
    profit_reserve: int,
    *,
    fee_ppm: int,
    buffer_minted: int,
    backing_shortfall: int,
    reserves_principal: int,
    claims_principal: int,
    carryover: int = 0,
) -> ProfitPlan:
    """
    План распределения прибыли (без side effects).

    Args:
        profit_reserve: Прибыль (delta > 0) в reserve units
        fee_ppm: Fee fraction
        buffer_minted: Выпущено в buffer из net profit (principal)
        backing_shortfall: Непокрытая часть supply (principal)
        reserves_principal: net_deposits после отчёта, в principal units
        claims_principal: supply - shortfall до отчёта
        carryover: Нераспределённый остаток текущего epoch (principal)

    Returns:
        ProfitPlan

    Восстановление backing ограничено reserve headroom:
        headroom = max(reserves - claims - fee - buffer_minted, 0)
    При глубоком недообеспечении headroom = 0 и восстановление равно нулю.

    Raises:
        ArithmeticUnderflow: buffer_minted больше net profit
    """
    validate_amount(profit_reserve, "profit_reserve")
    fee = compute_fee(profit_reserve, fee_ppm)
    net_profit = profit_reserve - fee
    net_principal = reserve_to_principal(net_profit)

    remaining = checked_sub(net_principal, buffer_minted)

    committed = claims_principal + reserve_to_principal(fee) + buffer_minted
    headroom = max(reserves_principal - committed, 0)
    backing_restored = min(backing_shortfall, remaining, headroom)

    distributed = remaining - backing_restored
    return ProfitPlan(
        profit=profit_reserve,
        fee=fee,
        net_profit=net_profit,
        buffer_minted=buffer_minted,
        backing_restored=backing_restored,
        distributed=distributed,
        carryover=carryover,
        epoch_profit=checked_add(distributed, carryover),
    )


def plan_loss_absorption(loss_principal: int, buffer_burned: int, vault_held: int) -> LossPlan:
    """
    План поглощения убытка: buffer → vault → backing (без side effects).

    Инварианты:
        buffer_burned + vault_burned + backing_reduction == loss
        vault_burned > 0 только если buffer исчерпан (buffer_burned < loss)
        backing_reduction > 0 только если ещё и vault_burned == vault_held
    """
    validate_amount(loss_principal, "loss_principal")
    remaining = checked_sub(loss_principal, buffer_burned)
    if remaining == 0:
        return LossPlan(
            loss=loss_principal,
            buffer_burned=buffer_burned,
            vault_burned=0,
            backing_reduction=0,
            stage=LossStage.SOLVENT,
        )

    vault_burned = min(remaining, vault_held)
    backing_reduction = remaining - vault_burned
    stage = (
        LossStage.BACKING_REDUCED_FULLY_FROZEN
        if backing_reduction
        else LossStage.VAULT_FROZEN_FOR_DEPOSITS
    )
    return LossPlan(
        loss=loss_principal,
        buffer_burned=buffer_burned,
        vault_burned=vault_burned,
        backing_reduction=backing_reduction,
        stage=stage,
    )


def released_profit(remaining: int, start_block: int, current_block: int, length: int) -> int:
    """Часть epoch profit, уже линейно выпущенная к current_block (floor)."""
    elapsed = max(current_block - start_block, 0)
    if elapsed >= length:
        return remaining
    return mul_div_floor(remaining, elapsed, length)


# =============================================================================
# OUTCOME
# =============================================================================


@dataclass(frozen=True)
class ReportOutcome:
    """Результат report."""

    kind: ReportKind
    previous_balance: int
    new_balance: int
    delta: int

    profit: Optional[ProfitPlan]
    loss: Optional[LossPlan]

    # Стадия после отчёта (по флагам collaborators)
    stage: LossStage

    details: str


# =============================================================================
# CONTEXT VIEWS
# =============================================================================


def loss_stage(ctx: CallContext) -> LossStage:
    if ctx.collaborators.principal_token.is_frozen():
        return LossStage.BACKING_REDUCED_FULLY_FROZEN
    if ctx.collaborators.vault.deposits_frozen():
        return LossStage.VAULT_FROZEN_FOR_DEPOSITS
    return LossStage.SOLVENT


def epoch_released_profit(ctx: CallContext) -> int:
    state = ctx.state
    return released_profit(
        state.epoch_profit_remaining,
        state.epoch_profit_start_block,
        ctx.collaborators.clock.current_block(),
        ctx.parameters.epoch_length_blocks,
    )


# =============================================================================
# MODULE
# =============================================================================


class ReconciliationModule(TreasuryModule):
    """Reconciliation отчётов custodian."""

    name = "reconciliation"

    def operations(self) -> Mapping[str, Callable[..., Any]]:
        return {
            "report": self.report,
            "unfreeze": self.unfreeze,
            "loss_stage": self.loss_stage,
            "fee_fraction": self.fee_fraction,
            "epoch_length": self.epoch_length,
            "epoch_profit_remaining": self.epoch_profit_remaining,
            "epoch_profit_start_block": self.epoch_profit_start_block,
            "epoch_released_profit": self.epoch_released_profit,
            "set_fee_fraction": self.set_fee_fraction,
            "set_epoch_length": self.set_epoch_length,
        }

    # --- views ---

    def loss_stage(self, ctx: CallContext) -> LossStage:
        return loss_stage(ctx)

    def fee_fraction(self, ctx: CallContext) -> int:
        return ctx.parameters.fee_fraction

    def epoch_length(self, ctx: CallContext) -> int:
        return ctx.parameters.epoch_length_blocks

    def epoch_profit_remaining(self, ctx: CallContext) -> int:
        return ctx.state.epoch_profit_remaining

    def epoch_profit_start_block(self, ctx: CallContext) -> int:
        return ctx.state.epoch_profit_start_block

    def epoch_released_profit(self, ctx: CallContext) -> int:
        return epoch_released_profit(ctx)

    # --- report ---

    def report(self, ctx: CallContext, new_balance: int) -> ReportOutcome:
        """
        Отчёт custodian о полном балансе.

        Raises:
            AccessDenied: caller не custodian
        """
        require_custodian(ctx)
        validate_amount(new_balance, "new_balance")

        state = ctx.state
        previous = state.custodian_balance
        state.custodian_balance = new_balance
        delta = new_balance - previous

        if delta == 0:
            return ReportOutcome(
                kind=ReportKind.NO_CHANGE,
                previous_balance=previous,
                new_balance=new_balance,
                delta=0,
                profit=None,
                loss=None,
                stage=loss_stage(ctx),
                details="No change in custodian balance",
            )
        if delta > 0:
            return self._apply_profit(ctx, previous, delta)
        return self._apply_loss(ctx, previous, -delta)

    def _apply_profit(self, ctx: CallContext, previous: int, profit: int) -> ReportOutcome:
        state = ctx.state
        token = ctx.collaborators.principal_token
        current_block = ctx.collaborators.clock.current_block()

        released = epoch_released_profit(ctx)
        carryover = state.epoch_profit_remaining - released

        shortfall = token.backing_shortfall()
        claims = max(token.total_supply() - shortfall, 0)

        # Target buffer считается от supply до mint fee
        fee_ppm = ctx.parameters.fee_fraction
        net_principal = reserve_to_principal(profit - compute_fee(profit, fee_ppm))
        buffer_minted = call_module(ctx, "top_up_principal", net_principal)

        plan = plan_profit_distribution(
            profit,
            fee_ppm=fee_ppm,
            buffer_minted=buffer_minted,
            backing_shortfall=shortfall,
            reserves_principal=reserve_to_principal(net_deposits(ctx)),
            claims_principal=claims,
            carryover=carryover,
        )

        state.epoch_profit_remaining = plan.epoch_profit
        state.epoch_profit_start_block = current_block

        fee_principal = reserve_to_principal(plan.fee)
        if fee_principal:
            token.mint(state.warchest, fee_principal)
        if plan.backing_restored:
            token.restore_backing(plan.backing_restored)
        elif shortfall:
            logger.warning(
                "Profit of %s reserve restored no backing (shortfall %d principal units)",
                format_reserve(profit),
                shortfall,
            )
        if plan.distributed:
            token.mint(state.vault, plan.distributed)
        ctx.collaborators.vault.notify_profit(plan.epoch_profit)

        logger.info(
            "Profit %s reserve: fee=%s buffer=%d restored=%d distributed=%d carryover=%d",
            format_reserve(profit),
            format_reserve(plan.fee),
            plan.buffer_minted,
            plan.backing_restored,
            plan.distributed,
            plan.carryover,
        )
        return ReportOutcome(
            kind=ReportKind.PROFIT,
            previous_balance=previous,
            new_balance=state.custodian_balance,
            delta=profit,
            profit=plan,
            loss=None,
            stage=loss_stage(ctx),
            details=f"Profit {profit}: epoch profit {plan.epoch_profit} from block {current_block}",
        )

    def _apply_loss(self, ctx: CallContext, previous: int, loss: int) -> ReportOutcome:
        state = ctx.state
        token = ctx.collaborators.principal_token
        vault = ctx.collaborators.vault

        loss_principal = reserve_to_principal(loss)

        # Stage 1
        slash = call_module(ctx, "slash_principal", loss_principal)
        plan = plan_loss_absorption(
            loss_principal,
            buffer_burned=slash.burned,
            vault_held=vault.principal_balance(),
        )

        # Stage 2
        if plan.stage != LossStage.SOLVENT:
            if plan.vault_burned:
                token.burn(state.vault, plan.vault_burned)
            vault.freeze_deposits()
            logger.warning(
                "Loss %s reserve exhausted buffer: vault burned %d, vault deposits frozen",
                format_reserve(loss),
                plan.vault_burned,
            )

        # Stage 3
        if plan.backing_reduction:
            token.reduce_backing(plan.backing_reduction)
            token.freeze()
            logger.warning(
                "Loss %s reserve exceeded buffer and vault: backing reduced by %d, "
                "principal token frozen",
                format_reserve(loss),
                plan.backing_reduction,
            )

        logger.info(
            "Loss %s reserve: buffer=%d vault=%d backing=%d stage=%s",
            format_reserve(loss),
            plan.buffer_burned,
            plan.vault_burned,
            plan.backing_reduction,
            plan.stage.value,
        )
        return ReportOutcome(
            kind=ReportKind.LOSS,
            previous_balance=previous,
            new_balance=state.custodian_balance,
            delta=-loss,
            profit=None,
            loss=plan,
            stage=loss_stage(ctx),
            details=f"Loss {loss}: {plan.stage.value}",
        )

    # --- authority ---

    def unfreeze(self, ctx: CallContext) -> LossStage:
        """Снятие заморозок vault и principal token."""
        require_authority(ctx)
        ctx.collaborators.vault.unfreeze_deposits()
        ctx.collaborators.principal_token.unfreeze()
        logger.info("Vault deposits and principal token unfrozen by authority")
        return loss_stage(ctx)

    def set_fee_fraction(self, ctx: CallContext, fraction_ppm: int) -> None:
        require_authority(ctx)
        ctx.state.parameters = update_parameters(ctx.state.parameters, "fee_fraction", fraction_ppm)
        logger.info("fee_fraction set to %d ppm", fraction_ppm)

    def set_epoch_length(self, ctx: CallContext, blocks: int) -> None:
        require_authority(ctx)
        ctx.state.parameters = update_parameters(
            ctx.state.parameters, "epoch_length_blocks", blocks
        )
        logger.info("epoch_length_blocks set to %d", blocks)
