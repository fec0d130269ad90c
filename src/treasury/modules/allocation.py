"""Allocation Module — аллокация reserve во внешний custodian.

Формулы:
    leverage_ceiling = principal_to_reserve(
        floor(vault.principal_balance × leverage_fraction / PPM_DENOMINATOR)
    )
    net_deposits = reserve_asset.balance_of(treasury) + custodian_balance

Порядок внутри send/recall: запись custodian_balance → перевод reserve →
уведомление custodian (последним, custodian считается недоверенным).
"""

import logging
from typing import Any, Callable, Mapping

from src.core.domain.parameters import update_parameters
from src.core.domain.units import format_reserve, principal_to_reserve
from src.core.errors import Frozen, LeverageExceeded
from src.core.math.fixed_point import checked_add, checked_sub, ppm_of, validate_amount
from src.treasury.modules.base import (
    CallContext,
    TreasuryModule,
    require_authority,
    require_custodian,
)

logger = logging.getLogger(__name__)


# =============================================================================
# VIEWS
# =============================================================================


def leverage_ceiling(ctx: CallContext) -> int:
    """Лимит аллокации custodian в reserve units (пересчитывается на каждый вызов)."""
    vault_principal = ctx.collaborators.vault.principal_balance()
    ceiling_principal = ppm_of(vault_principal, ctx.parameters.leverage_fraction)
    return principal_to_reserve(ceiling_principal)


def within_leverage(ctx: CallContext, amount: int) -> bool:
    """amount <= leverage_ceiling; для amount == 0 всегда True."""
    validate_amount(amount)
    if amount == 0:
        return True
    return amount <= leverage_ceiling(ctx)


def treasury_reserve_balance(ctx: CallContext) -> int:
    return ctx.collaborators.reserve_asset.balance_of(ctx.state.treasury)


def net_deposits(ctx: CallContext) -> int:
    return checked_add(treasury_reserve_balance(ctx), ctx.state.custodian_balance)


# =============================================================================
# MODULE
# =============================================================================


class AllocationModule(TreasuryModule):
    """Операции аллокации и параметры leverage."""

    name = "allocation"

    def operations(self) -> Mapping[str, Callable[..., Any]]:
        return {
            "leverage_ceiling": self.leverage_ceiling,
            "within_leverage": self.within_leverage,
            "net_deposits": self.net_deposits,
            "custodian_balance": self.custodian_balance,
            "custodian": self.custodian,
            "leverage_fraction": self.leverage_fraction,
            "send_to_custodian": self.send_to_custodian,
            "recall_from_custodian": self.recall_from_custodian,
            "set_custodian": self.set_custodian,
            "set_leverage_fraction": self.set_leverage_fraction,
        }

    # --- views ---

    def leverage_ceiling(self, ctx: CallContext) -> int:
        return leverage_ceiling(ctx)

    def within_leverage(self, ctx: CallContext, amount: int) -> bool:
        return within_leverage(ctx, amount)

    def net_deposits(self, ctx: CallContext) -> int:
        return net_deposits(ctx)

    def custodian_balance(self, ctx: CallContext) -> int:
        return ctx.state.custodian_balance

    def custodian(self, ctx: CallContext) -> str:
        return ctx.state.custodian

    def leverage_fraction(self, ctx: CallContext) -> int:
        return ctx.parameters.leverage_fraction

    # --- custodian operations ---

    def send_to_custodian(self, ctx: CallContext, amount: int) -> int:
        """
        Перевод reserve custodian в пределах leverage ceiling.

        Returns:
            Новый custodian_balance

        Raises:
            AccessDenied: caller не custodian
            Frozen: principal token полностью заморожен
            LeverageExceeded: custodian_balance + amount > leverage_ceiling
        """
        require_custodian(ctx)
        validate_amount(amount)
        if ctx.collaborators.principal_token.is_frozen():
            raise Frozen("Allocation is blocked while the principal token is frozen")

        new_balance = checked_add(ctx.state.custodian_balance, amount)
        ceiling = leverage_ceiling(ctx)
        if new_balance > ceiling:
            raise LeverageExceeded(new_balance, ceiling)

        state = ctx.state
        custodian = ctx.collaborators.custodian(state.custodian)
        state.custodian_balance = new_balance
        ctx.collaborators.reserve_asset.transfer(state.treasury, state.custodian, amount)
        custodian.deposit(amount)

        logger.info(
            "Sent %s reserve to custodian %s (balance %s, ceiling %s)",
            format_reserve(amount),
            state.custodian,
            format_reserve(new_balance),
            format_reserve(ceiling),
        )
        return new_balance

    def recall_from_custodian(self, ctx: CallContext, amount: int) -> int:
        """
        Возврат reserve от custodian.

        Returns:
            Новый custodian_balance

        Raises:
            AccessDenied: caller не custodian
            ArithmeticUnderflow: amount > custodian_balance
        """
        require_custodian(ctx)
        new_balance = checked_sub(ctx.state.custodian_balance, amount)

        state = ctx.state
        custodian = ctx.collaborators.custodian(state.custodian)
        state.custodian_balance = new_balance
        ctx.collaborators.reserve_asset.transfer_from(
            state.treasury, state.custodian, state.treasury, amount
        )
        custodian.withdraw(amount)

        logger.info(
            "Recalled %s reserve from custodian %s (balance %s)",
            format_reserve(amount),
            state.custodian,
            format_reserve(new_balance),
        )
        return new_balance

    # --- authority setters ---

    def set_custodian(self, ctx: CallContext, custodian: str) -> None:
        require_authority(ctx)
        # Адрес без collaborator → CollaboratorNotSet
        ctx.collaborators.custodian(custodian)
        previous = ctx.state.custodian
        ctx.state.custodian = custodian
        logger.info("Custodian changed %s -> %s", previous, custodian)

    def set_leverage_fraction(self, ctx: CallContext, fraction_ppm: int) -> None:
        require_authority(ctx)
        ctx.state.parameters = update_parameters(
            ctx.state.parameters, "leverage_fraction", fraction_ppm
        )
        logger.info("leverage_fraction set to %d ppm", fraction_ppm)
