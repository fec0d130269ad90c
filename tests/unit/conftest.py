"""
Общие fixtures для unit тестов treasury.

Treasury собирается из in-memory collaborators; пользователи заводятся
через реальные пользовательские пути (principal_token.deposit + vault.stake).
"""

import pytest

from src.core.domain import DECIMAL_SCALE_FACTOR, TreasuryConfig
from src.treasury import build_treasury

SCALE = DECIMAL_SCALE_FACTOR

AUTHORITY = "authority"
TREASURY = "treasury"
WARCHEST = "warchest"
CUSTODIAN = "custodian"
VAULT = "vault"
ALICE = "alice"


@pytest.fixture
def config():
    """Конфигурация с параметрами по умолчанию."""
    return TreasuryConfig(
        treasury=TREASURY,
        authority=AUTHORITY,
        warchest=WARCHEST,
        custodian=CUSTODIAN,
        reserve_asset="reserve-asset",
        principal_token="principal-token",
        vault=VAULT,
    )


@pytest.fixture
def treasury(config):
    return build_treasury(config)


@pytest.fixture
def seed(treasury):
    """
    Депозит пользователя: reserve → principal по par, затем stake в vault.

    Returns:
        Функция seed(amount_reserve, stake_reserve=None, user=ALICE)
    """
    reserve = treasury.collaborators.reserve_asset
    token = treasury.collaborators.principal_token
    vault = treasury.collaborators.vault

    def _seed(amount_reserve, stake_reserve=None, user=ALICE):
        reserve.mint(user, amount_reserve)
        token.deposit(user, amount_reserve)
        staked = amount_reserve if stake_reserve is None else stake_reserve
        if staked:
            vault.stake(user, staked * SCALE)

    return _seed
