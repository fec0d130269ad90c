"""Collaborators — внешние компоненты treasury на границе вызова.

Протоколы:
- ReserveAsset: fungible token reserve (6 decimals)
- PrincipalToken: principal token (18 decimals), mint/burn/freeze/backing
- StakingVault: vault с principal holdings, deposit-freeze, profit drip
- Custodian: двухметодный интерфейс deposit/withdraw (уведомления)
- BlockClock: источник номера блока для epoch распределения

In-memory реализации используются для сценариев и тестов. Все они
поддерживают snapshot()/restore() и участвуют в атомарном journal.
"""

from dataclasses import dataclass, field
from typing import Any, Iterator, Protocol, runtime_checkable

from src.core.domain.units import reserve_to_principal
from src.core.errors import CollaboratorNotSet, Frozen, InsufficientBalance
from src.core.math.fixed_point import (
    PPM_DENOMINATOR,
    UINT256_MAX,
    checked_add,
    checked_sub,
    mul_div_floor,
    validate_amount,
)


# =============================================================================
# PROTOCOLS
# =============================================================================


@runtime_checkable
class Journaled(Protocol):
    """Участник атомарного journal."""

    def snapshot(self) -> Any: ...

    def restore(self, checkpoint: Any) -> None: ...


class ReserveAsset(Protocol):
    address: str

    def balance_of(self, account: str) -> int: ...

    def transfer(self, sender: str, to: str, amount: int) -> None: ...

    def transfer_from(self, spender: str, owner: str, to: str, amount: int) -> None: ...

    def approve(self, owner: str, spender: str, amount: int) -> None: ...


class PrincipalToken(Protocol):
    address: str

    def mint(self, to: str, amount: int) -> None: ...

    def burn(self, from_: str, amount: int) -> None: ...

    def total_supply(self) -> int: ...

    def balance_of(self, account: str) -> int: ...

    def freeze(self) -> None: ...

    def unfreeze(self) -> None: ...

    def is_frozen(self) -> bool: ...

    def backing_shortfall(self) -> int: ...

    def reduce_backing(self, amount: int) -> None: ...

    def restore_backing(self, amount: int) -> None: ...

    def backing_ratio_ppm(self) -> int: ...


class StakingVault(Protocol):
    address: str

    def principal_balance(self) -> int: ...

    def freeze_deposits(self) -> None: ...

    def unfreeze_deposits(self) -> None: ...

    def deposits_frozen(self) -> bool: ...

    def notify_profit(self, amount: int) -> None: ...


class Custodian(Protocol):
    address: str

    def deposit(self, amount: int) -> None: ...

    def withdraw(self, amount: int) -> None: ...


class BlockClock(Protocol):
    def current_block(self) -> int: ...


# =============================================================================
# IN-MEMORY RESERVE ASSET
# =============================================================================


class InMemoryReserveAsset:
    """Reserve asset ledger: балансы + allowances."""

    def __init__(self, address: str = "reserve-asset"):
        self.address = address
        self._balances: dict[str, int] = {}
        self._allowances: dict[tuple[str, str], int] = {}

    def balance_of(self, account: str) -> int:
        return self._balances.get(account, 0)

    def allowance(self, owner: str, spender: str) -> int:
        return self._allowances.get((owner, spender), 0)

    def mint(self, to: str, amount: int) -> None:
        """Выпуск reserve (faucet для сценариев и симуляции доходности)."""
        self._balances[to] = checked_add(self.balance_of(to), amount)

    def burn(self, from_: str, amount: int) -> None:
        """Изъятие reserve (симуляция потерь custodian)."""
        self._debit(from_, amount)

    def transfer(self, sender: str, to: str, amount: int) -> None:
        validate_amount(amount)
        self._debit(sender, amount)
        self._balances[to] = checked_add(self.balance_of(to), amount)

    def approve(self, owner: str, spender: str, amount: int) -> None:
        self._allowances[(owner, spender)] = validate_amount(amount)

    def transfer_from(self, spender: str, owner: str, to: str, amount: int) -> None:
        validate_amount(amount)
        allowed = self.allowance(owner, spender)
        if allowed < amount:
            raise InsufficientBalance(f"{owner}->{spender} allowance", allowed, amount)
        if allowed != UINT256_MAX:
            self._allowances[(owner, spender)] = allowed - amount
        self.transfer(owner, to, amount)

    def _debit(self, account: str, amount: int) -> None:
        available = self.balance_of(account)
        if available < amount:
            raise InsufficientBalance(account, available, amount)
        self._balances[account] = available - amount

    def snapshot(self) -> tuple[dict[str, int], dict[tuple[str, str], int]]:
        return dict(self._balances), dict(self._allowances)

    def restore(self, checkpoint: tuple[dict[str, int], dict[tuple[str, str], int]]) -> None:
        balances, allowances = checkpoint
        self._balances = dict(balances)
        self._allowances = dict(allowances)


# =============================================================================
# IN-MEMORY PRINCIPAL TOKEN
# =============================================================================


@dataclass
class _PrincipalLedger:
    balances: dict[str, int] = field(default_factory=dict)
    total_supply: int = 0
    frozen: bool = False
    backing_shortfall: int = 0


class InMemoryPrincipalToken:
    """
    Principal token с backing shortfall.

    backing_shortfall — непокрытая часть supply в principal units:
    effective backing ratio = (supply - shortfall) / supply.

    Пользовательские пути deposit/redeem блокируются при freeze (Frozen).
    mint/burn — привилегированные пути treasury, freeze их не блокирует.
    """

    def __init__(
        self,
        reserve_asset: InMemoryReserveAsset,
        reserve_holder: str,
        address: str = "principal-token",
    ):
        self.address = address
        self._reserve_asset = reserve_asset
        self._reserve_holder = reserve_holder
        self._ledger = _PrincipalLedger()

    # --- ERC20-like views ---

    def total_supply(self) -> int:
        return self._ledger.total_supply

    def balance_of(self, account: str) -> int:
        return self._ledger.balances.get(account, 0)

    # --- privileged supply changes ---

    def mint(self, to: str, amount: int) -> None:
        self._ledger.total_supply = checked_add(self._ledger.total_supply, amount)
        self._ledger.balances[to] = checked_add(self.balance_of(to), amount)

    def burn(self, from_: str, amount: int) -> None:
        validate_amount(amount)
        available = self.balance_of(from_)
        if available < amount:
            raise InsufficientBalance(from_, available, amount)
        self._ledger.balances[from_] = available - amount
        self._ledger.total_supply -= amount

    def transfer(self, sender: str, to: str, amount: int) -> None:
        validate_amount(amount)
        available = self.balance_of(sender)
        if available < amount:
            raise InsufficientBalance(sender, available, amount)
        self._ledger.balances[sender] = available - amount
        self._ledger.balances[to] = checked_add(self.balance_of(to), amount)

    # --- freeze ---

    def freeze(self) -> None:
        self._ledger.frozen = True

    def unfreeze(self) -> None:
        self._ledger.frozen = False

    def is_frozen(self) -> bool:
        return self._ledger.frozen

    # --- backing ---

    def backing_shortfall(self) -> int:
        return self._ledger.backing_shortfall

    def reduce_backing(self, amount: int) -> None:
        self._ledger.backing_shortfall = checked_add(self._ledger.backing_shortfall, amount)

    def restore_backing(self, amount: int) -> None:
        self._ledger.backing_shortfall = checked_sub(self._ledger.backing_shortfall, amount)

    def backing_ratio_ppm(self) -> int:
        """Effective backing ratio в ppm (PPM_DENOMINATOR = par)."""
        supply = self._ledger.total_supply
        if supply == 0:
            return PPM_DENOMINATOR
        backed = max(supply - self._ledger.backing_shortfall, 0)
        return mul_div_floor(backed, PPM_DENOMINATOR, supply)

    # --- user paths ---

    def deposit(self, user: str, amount_reserve: int) -> int:
        """Депозит reserve пользователем → mint principal по par."""
        if self._ledger.frozen:
            raise Frozen("Principal token deposits are frozen")
        self._reserve_asset.transfer(user, self._reserve_holder, amount_reserve)
        minted = reserve_to_principal(amount_reserve)
        self.mint(user, minted)
        return minted

    def redeem(self, user: str, amount_reserve: int) -> int:
        """Вывод reserve пользователем → burn principal по par."""
        if self._ledger.frozen:
            raise Frozen("Principal token withdrawals are frozen")
        burned = reserve_to_principal(amount_reserve)
        self.burn(user, burned)
        self._reserve_asset.transfer(self._reserve_holder, user, amount_reserve)
        return burned

    def snapshot(self) -> _PrincipalLedger:
        ledger = self._ledger
        return _PrincipalLedger(
            balances=dict(ledger.balances),
            total_supply=ledger.total_supply,
            frozen=ledger.frozen,
            backing_shortfall=ledger.backing_shortfall,
        )

    def restore(self, checkpoint: _PrincipalLedger) -> None:
        self._ledger = _PrincipalLedger(
            balances=dict(checkpoint.balances),
            total_supply=checkpoint.total_supply,
            frozen=checkpoint.frozen,
            backing_shortfall=checkpoint.backing_shortfall,
        )


# =============================================================================
# IN-MEMORY STAKING VAULT
# =============================================================================


class InMemoryStakingVault:
    """Staking vault: хранит principal, принимает уведомления о прибыли."""

    def __init__(self, principal_token: InMemoryPrincipalToken, address: str = "vault"):
        self.address = address
        self._principal_token = principal_token
        self._deposits_frozen = False
        self.profit_notifications: list[int] = []

    def principal_balance(self) -> int:
        return self._principal_token.balance_of(self.address)

    def freeze_deposits(self) -> None:
        self._deposits_frozen = True

    def unfreeze_deposits(self) -> None:
        self._deposits_frozen = False

    def deposits_frozen(self) -> bool:
        return self._deposits_frozen

    def notify_profit(self, amount: int) -> None:
        self.profit_notifications.append(validate_amount(amount))

    def stake(self, user: str, amount: int) -> None:
        if self._deposits_frozen:
            raise Frozen("Vault deposits are frozen")
        self._principal_token.transfer(user, self.address, amount)

    def snapshot(self) -> tuple[bool, list[int]]:
        return self._deposits_frozen, list(self.profit_notifications)

    def restore(self, checkpoint: tuple[bool, list[int]]) -> None:
        self._deposits_frozen, notifications = checkpoint
        self.profit_notifications = list(notifications)


# =============================================================================
# RECORDING CUSTODIAN
# =============================================================================


class RecordingCustodian:
    """
    Custodian-двойник: записывает уведомления deposit/withdraw.

    При создании выдаёт treasury неограниченный allowance на reserve,
    чтобы recall мог забрать средства через transfer_from.
    """

    def __init__(
        self,
        reserve_asset: InMemoryReserveAsset,
        treasury: str,
        address: str = "custodian",
    ):
        self.address = address
        self._reserve_asset = reserve_asset
        self.notifications: list[tuple[str, int]] = []
        reserve_asset.approve(address, treasury, UINT256_MAX)

    def deposit(self, amount: int) -> None:
        self.notifications.append(("deposit", amount))

    def withdraw(self, amount: int) -> None:
        self.notifications.append(("withdraw", amount))

    def held(self) -> int:
        return self._reserve_asset.balance_of(self.address)

    def snapshot(self) -> list[tuple[str, int]]:
        return list(self.notifications)

    def restore(self, checkpoint: list[tuple[str, int]]) -> None:
        self.notifications = list(checkpoint)


# =============================================================================
# CLOCK
# =============================================================================


class ManualClock:
    """Номер блока, продвигаемый вручную."""

    def __init__(self, block: int = 0):
        self._block = validate_amount(block, "block")

    def current_block(self) -> int:
        return self._block

    def advance(self, blocks: int = 1) -> int:
        self._block = checked_add(self._block, blocks)
        return self._block


# =============================================================================
# CONTAINER
# =============================================================================


@dataclass
class Collaborators:
    """Набор collaborators, разделяемый всеми модулями treasury."""

    reserve_asset: ReserveAsset
    principal_token: PrincipalToken
    vault: StakingVault
    clock: BlockClock
    custodians: dict[str, Custodian] = field(default_factory=dict)

    def add_custodian(self, custodian: Custodian) -> None:
        self.custodians[custodian.address] = custodian

    def custodian(self, address: str) -> Custodian:
        """
        Custodian по адресу.

        Raises:
            CollaboratorNotSet: Если для адреса нет зарегистрированного custodian
        """
        try:
            return self.custodians[address]
        except KeyError:
            raise CollaboratorNotSet(f"custodian {address}") from None

    def participants(self) -> Iterator[Journaled]:
        """Collaborators, поддерживающие snapshot()/restore()."""
        candidates = [self.reserve_asset, self.principal_token, self.vault, self.clock]
        candidates.extend(self.custodians.values())
        for candidate in candidates:
            if isinstance(candidate, Journaled):
                yield candidate
