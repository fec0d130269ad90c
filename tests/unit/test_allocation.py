"""
Тесты для Allocation Module — leverage ceiling и custodian переводы

Проверяемые инварианты:
1. custodian_balance никогда не превышает leverage ceiling
2. Ceiling пересчитывается от текущих principal holdings vault
3. within_leverage(0) всегда True
4. recall > custodian_balance → ArithmeticUnderflow
5. Custodian уведомляется после перевода; при ошибке всё откатывается
"""

import pytest

from src.core.domain import DECIMAL_SCALE_FACTOR
from src.core.errors import (
    AccessDenied,
    ArithmeticUnderflow,
    CollaboratorNotSet,
    Frozen,
    LeverageExceeded,
    ParameterOutOfBounds,
)
from src.core.math import PPM_DENOMINATOR
from src.treasury import RecordingCustodian

SCALE = DECIMAL_SCALE_FACTOR
AUTHORITY = "authority"
TREASURY = "treasury"
CUSTODIAN = "custodian"


class ExplodingCustodian(RecordingCustodian):
    """Custodian, падающий на уведомлении deposit."""

    def deposit(self, amount):
        raise RuntimeError("custodian rejected deposit")


# =============================================================================
# ТЕСТЫ: leverage ceiling
# =============================================================================


class TestLeverageCeiling:
    def test_scenario_ten_percent_of_vault(self, treasury, seed):
        """10% от 1,000,000 units в vault → ceiling 100,000."""
        seed(1_000_000)
        assert treasury.collaborators.vault.principal_balance() == 1_000_000 * SCALE
        assert treasury.call("leverage_ceiling", "anyone") == 100_000

    def test_exact_ceiling_succeeds(self, treasury, seed):
        seed(1_000_000)
        assert treasury.call("send_to_custodian", CUSTODIAN, 100_000) == 100_000
        assert treasury.call("custodian_balance", "anyone") == 100_000

    def test_one_above_ceiling_fails(self, treasury, seed):
        seed(1_000_000)
        with pytest.raises(LeverageExceeded) as exc_info:
            treasury.call("send_to_custodian", CUSTODIAN, 100_001)
        assert exc_info.value.ceiling == 100_000
        assert exc_info.value.requested_total == 100_001
        assert treasury.state.custodian_balance == 0

    def test_ceiling_is_cumulative(self, treasury, seed):
        seed(1_000_000)
        treasury.call("send_to_custodian", CUSTODIAN, 60_000)
        with pytest.raises(LeverageExceeded):
            treasury.call("send_to_custodian", CUSTODIAN, 40_001)
        treasury.call("send_to_custodian", CUSTODIAN, 40_000)

    def test_ceiling_tracks_vault_holdings(self, treasury, seed):
        """Ceiling не кэшируется: новый stake сразу поднимает лимит."""
        seed(1_000_000)
        assert treasury.call("leverage_ceiling", "anyone") == 100_000
        seed(500_000, user="bob")
        assert treasury.call("leverage_ceiling", "anyone") == 150_000

    def test_unstaked_principal_does_not_count(self, treasury, seed):
        seed(1_000_000, stake_reserve=0)
        assert treasury.call("leverage_ceiling", "anyone") == 0

    def test_within_leverage(self, treasury, seed):
        seed(1_000_000)
        assert treasury.call("within_leverage", "anyone", 100_000)
        assert not treasury.call("within_leverage", "anyone", 100_001)

    def test_within_leverage_zero_always_true(self, treasury):
        """Даже при нулевом ceiling (пустой vault)."""
        assert treasury.call("leverage_ceiling", "anyone") == 0
        assert treasury.call("within_leverage", "anyone", 0)

    def test_within_leverage_rejects_negative(self, treasury):
        with pytest.raises(ArithmeticUnderflow):
            treasury.call("within_leverage", "anyone", -1)


# =============================================================================
# ТЕСТЫ: send / recall
# =============================================================================


class TestSendRecall:
    def test_send_moves_reserve_and_notifies(self, treasury, seed):
        seed(1_000_000)
        reserve = treasury.collaborators.reserve_asset
        custodian = treasury.collaborators.custodian(CUSTODIAN)

        treasury.call("send_to_custodian", CUSTODIAN, 60_000)

        assert reserve.balance_of(TREASURY) == 940_000
        assert custodian.held() == 60_000
        assert custodian.notifications == [("deposit", 60_000)]

    def test_net_deposits_unchanged_by_allocation(self, treasury, seed):
        seed(1_000_000)
        before = treasury.call("net_deposits", "anyone")
        treasury.call("send_to_custodian", CUSTODIAN, 60_000)
        assert treasury.call("net_deposits", "anyone") == before == 1_000_000

    def test_recall(self, treasury, seed):
        seed(1_000_000)
        reserve = treasury.collaborators.reserve_asset
        custodian = treasury.collaborators.custodian(CUSTODIAN)
        treasury.call("send_to_custodian", CUSTODIAN, 60_000)

        assert treasury.call("recall_from_custodian", CUSTODIAN, 20_000) == 40_000

        assert reserve.balance_of(TREASURY) == 960_000
        assert custodian.held() == 40_000
        assert custodian.notifications[-1] == ("withdraw", 20_000)

    def test_recall_above_balance_underflows(self, treasury, seed):
        seed(1_000_000)
        treasury.call("send_to_custodian", CUSTODIAN, 10_000)
        with pytest.raises(ArithmeticUnderflow):
            treasury.call("recall_from_custodian", CUSTODIAN, 10_001)
        assert treasury.state.custodian_balance == 10_000

    @pytest.mark.parametrize("operation", ["send_to_custodian", "recall_from_custodian"])
    def test_custodian_only(self, treasury, seed, operation):
        seed(1_000_000)
        with pytest.raises(AccessDenied) as exc_info:
            treasury.call(operation, AUTHORITY, 1)
        assert exc_info.value.required_role == "custodian"

    def test_send_blocked_while_token_frozen(self, treasury, seed):
        seed(1_000_000)
        treasury.collaborators.principal_token.freeze()
        with pytest.raises(Frozen):
            treasury.call("send_to_custodian", CUSTODIAN, 1)

    def test_recall_allowed_while_token_frozen(self, treasury, seed):
        seed(1_000_000)
        treasury.call("send_to_custodian", CUSTODIAN, 1_000)
        treasury.collaborators.principal_token.freeze()
        assert treasury.call("recall_from_custodian", CUSTODIAN, 1_000) == 0

    def test_failed_notification_rolls_back(self, treasury, seed):
        """Custodian падает на deposit → баланс и reserve не изменились."""
        seed(1_000_000)
        reserve = treasury.collaborators.reserve_asset
        treasury.collaborators.add_custodian(
            ExplodingCustodian(reserve, treasury=TREASURY, address="custodian-2")
        )
        treasury.call("set_custodian", AUTHORITY, "custodian-2")

        with pytest.raises(RuntimeError, match="rejected"):
            treasury.call("send_to_custodian", "custodian-2", 5_000)

        assert treasury.state.custodian_balance == 0
        assert reserve.balance_of(TREASURY) == 1_000_000
        assert reserve.balance_of("custodian-2") == 0


# =============================================================================
# ТЕСТЫ: authority setters
# =============================================================================


class TestAuthoritySetters:
    def test_set_custodian(self, treasury, seed):
        seed(1_000_000)
        reserve = treasury.collaborators.reserve_asset
        treasury.collaborators.add_custodian(
            RecordingCustodian(reserve, treasury=TREASURY, address="custodian-2")
        )

        treasury.call("set_custodian", AUTHORITY, "custodian-2")

        assert treasury.call("custodian", "anyone") == "custodian-2"
        with pytest.raises(AccessDenied):
            treasury.call("send_to_custodian", CUSTODIAN, 1)
        treasury.call("send_to_custodian", "custodian-2", 1)

    def test_set_custodian_unknown_address(self, treasury):
        with pytest.raises(CollaboratorNotSet):
            treasury.call("set_custodian", AUTHORITY, "nobody")
        assert treasury.state.custodian == CUSTODIAN

    def test_set_custodian_requires_authority(self, treasury):
        with pytest.raises(AccessDenied):
            treasury.call("set_custodian", CUSTODIAN, CUSTODIAN)

    def test_set_leverage_fraction(self, treasury, seed):
        seed(1_000_000)
        treasury.call("set_leverage_fraction", AUTHORITY, 250_000)
        assert treasury.call("leverage_fraction", "anyone") == 250_000
        assert treasury.call("leverage_ceiling", "anyone") == 250_000

    def test_set_leverage_fraction_bounds(self, treasury):
        with pytest.raises(ParameterOutOfBounds):
            treasury.call("set_leverage_fraction", AUTHORITY, PPM_DENOMINATOR + 1)
        assert treasury.call("leverage_fraction", "anyone") == 100_000

    def test_set_leverage_fraction_requires_authority(self, treasury):
        with pytest.raises(AccessDenied):
            treasury.call("set_leverage_fraction", CUSTODIAN, 0)
