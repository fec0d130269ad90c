"""
Treasury handler modules.

- allocation: leverage ceiling, send/recall reserve к custodian
- buffer: целевой резерв treasury, top-up и slash
- reconciliation: profit/loss waterfall по отчётам custodian
"""

from src.treasury.modules.allocation import AllocationModule
from src.treasury.modules.base import (
    CallContext,
    TreasuryModule,
    call_module,
    require_authority,
    require_custodian,
    require_treasury,
)
from src.treasury.modules.buffer import BufferModule, SlashResult, plan_slash, plan_top_up
from src.treasury.modules.reconciliation import (
    LossPlan,
    ProfitPlan,
    ReconciliationModule,
    ReportOutcome,
    compute_fee,
    plan_loss_absorption,
    plan_profit_distribution,
    released_profit,
)

__all__ = [
    # Base
    "CallContext",
    "TreasuryModule",
    "call_module",
    "require_authority",
    "require_custodian",
    "require_treasury",
    # Modules
    "AllocationModule",
    "BufferModule",
    "ReconciliationModule",
    # Plans
    "SlashResult",
    "ProfitPlan",
    "LossPlan",
    "ReportOutcome",
    "plan_top_up",
    "plan_slash",
    "plan_profit_distribution",
    "plan_loss_absorption",
    "compute_fee",
    "released_profit",
]
