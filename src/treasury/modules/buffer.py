"""Buffer Module — собственный резерв treasury для поглощения убытков.

Buffer — principal units на балансе treasury у principal token.

Формулы:
    buffer_target = floor(total_supply × buffer_target_fraction / PPM_DENOMINATOR)
    top-up:  minted = min(floor(profit × renewal / PPM_DENOMINATOR), target - held)
    slash:   burned = min(loss, held), remaining = loss - burned

Инварианты:
- top-up никогда не поднимает buffer выше target
- slash никогда не сжигает больше, чем held
- buffer_target не кэшируется

top_up/slash (reserve units, floor) и top_up_principal/slash_principal
доступны только treasury. Reconciliation вызывает principal-варианты через
dispatch table (call_module), поэтому замена buffer модуля меняет report.
"""

import logging
from typing import Any, Callable, Mapping, NamedTuple

from src.core.domain.parameters import update_parameters
from src.core.domain.units import principal_to_reserve, reserve_to_principal
from src.core.math.fixed_point import ppm_of, validate_amount
from src.treasury.modules.base import (
    CallContext,
    TreasuryModule,
    require_authority,
    require_treasury,
)

logger = logging.getLogger(__name__)


class SlashResult(NamedTuple):
    """Результат slash в principal units."""

    burned: int
    remaining: int


# =============================================================================
# PURE PLANNING
# =============================================================================


def plan_top_up(profit_principal: int, held: int, target: int, renewal_ppm: int) -> int:
    """
    Сколько principal units выпустить в buffer.

    Args:
        profit_principal: Net profit в principal units
        held: Текущий buffer
        target: Целевой buffer
        renewal_ppm: Доля прибыли на пополнение

    Returns:
        0 если held >= target, иначе min(candidate, target - held)
    """
    validate_amount(profit_principal, "profit_principal")
    if held >= target:
        return 0
    gap = target - held
    candidate = ppm_of(profit_principal, renewal_ppm)
    return min(candidate, gap)


def plan_slash(loss_principal: int, held: int) -> SlashResult:
    """
    Сколько principal units сжечь из buffer.

    Examples:
        >>> plan_slash(100, 1_000)
        SlashResult(burned=100, remaining=0)
        >>> plan_slash(1_000, 100)
        SlashResult(burned=100, remaining=900)
    """
    validate_amount(loss_principal, "loss_principal")
    if held >= loss_principal:
        return SlashResult(burned=loss_principal, remaining=0)
    return SlashResult(burned=held, remaining=loss_principal - held)


# =============================================================================
# CONTEXT OPERATIONS
# =============================================================================


def buffer_target(ctx: CallContext) -> int:
    total_supply = ctx.collaborators.principal_token.total_supply()
    return ppm_of(total_supply, ctx.parameters.buffer_target_fraction)


def buffer_held(ctx: CallContext) -> int:
    return ctx.collaborators.principal_token.balance_of(ctx.state.treasury)


def top_up_principal(ctx: CallContext, profit_principal: int) -> int:
    """Пополнение buffer из прибыли. Returns: выпущено principal units."""
    minted = plan_top_up(
        profit_principal,
        held=buffer_held(ctx),
        target=buffer_target(ctx),
        renewal_ppm=ctx.parameters.buffer_renewal_fraction,
    )
    if minted:
        ctx.collaborators.principal_token.mint(ctx.state.treasury, minted)
        logger.info("Buffer topped up by %d principal units", minted)
    return minted


def slash_principal(ctx: CallContext, loss_principal: int) -> SlashResult:
    """Поглощение убытка buffer. Returns: SlashResult в principal units."""
    result = plan_slash(loss_principal, held=buffer_held(ctx))
    if result.burned:
        ctx.collaborators.principal_token.burn(ctx.state.treasury, result.burned)
        logger.info(
            "Buffer slashed by %d principal units (%d unresolved)",
            result.burned,
            result.remaining,
        )
    return result


# =============================================================================
# MODULE
# =============================================================================


class BufferModule(TreasuryModule):
    """Операции buffer и его параметры."""

    name = "buffer"

    def operations(self) -> Mapping[str, Callable[..., Any]]:
        return {
            "buffer_target": self.buffer_target,
            "buffer_held": self.buffer_held,
            "buffer_target_fraction": self.buffer_target_fraction,
            "buffer_renewal_fraction": self.buffer_renewal_fraction,
            "top_up": self.top_up,
            "slash": self.slash,
            "top_up_principal": self.top_up_principal,
            "slash_principal": self.slash_principal,
            "set_buffer_target_fraction": self.set_buffer_target_fraction,
            "set_buffer_renewal_fraction": self.set_buffer_renewal_fraction,
        }

    def buffer_target(self, ctx: CallContext) -> int:
        return buffer_target(ctx)

    def buffer_held(self, ctx: CallContext) -> int:
        return buffer_held(ctx)

    def buffer_target_fraction(self, ctx: CallContext) -> int:
        return ctx.parameters.buffer_target_fraction

    def buffer_renewal_fraction(self, ctx: CallContext) -> int:
        return ctx.parameters.buffer_renewal_fraction

    def top_up(self, ctx: CallContext, profit_reserve: int) -> int:
        """
        Пополнение buffer из прибыли в reserve units.

        Returns:
            Выпущено в buffer, в reserve units (floor)
        """
        require_treasury(ctx)
        minted = top_up_principal(ctx, reserve_to_principal(profit_reserve))
        return principal_to_reserve(minted)

    def slash(self, ctx: CallContext, loss_reserve: int) -> int:
        """
        Поглощение убытка в reserve units.

        Returns:
            (loss_principal - burned) / DECIMAL_SCALE_FACTOR, floor
        """
        require_treasury(ctx)
        result = slash_principal(ctx, reserve_to_principal(loss_reserve))
        return principal_to_reserve(result.remaining)

    # Principal-unit варианты для reconciliation: без потери dust на конверсии

    def top_up_principal(self, ctx: CallContext, profit_principal: int) -> int:
        require_treasury(ctx)
        return top_up_principal(ctx, profit_principal)

    def slash_principal(self, ctx: CallContext, loss_principal: int) -> SlashResult:
        require_treasury(ctx)
        return slash_principal(ctx, loss_principal)

    def set_buffer_target_fraction(self, ctx: CallContext, fraction_ppm: int) -> None:
        require_authority(ctx)
        ctx.state.parameters = update_parameters(
            ctx.state.parameters, "buffer_target_fraction", fraction_ppm
        )
        logger.info("buffer_target_fraction set to %d ppm", fraction_ppm)

    def set_buffer_renewal_fraction(self, ctx: CallContext, fraction_ppm: int) -> None:
        require_authority(ctx)
        ctx.state.parameters = update_parameters(
            ctx.state.parameters, "buffer_renewal_fraction", fraction_ppm
        )
        logger.info("buffer_renewal_fraction set to %d ppm", fraction_ppm)
