"""
Тесты для Dispatcher — registry operation id → handler

Проверяемые инварианты:
1. Каждый operation id привязан максимум к одному handler
2. Registry мутации доступны только authority
3. Незарегистрированный id → OperationNotFound
4. Ошибки handler пробрасываются без изменений, состояние откатывается
5. replace/unregister работают по идентичности handler
6. call_module исполняет чужую операцию от имени treasury в той же транзакции
"""

import logging

import pytest

from src.core.errors import (
    AccessDenied,
    AlreadyRegistered,
    OperationNotFound,
    ZeroTarget,
)
from src.treasury import Dispatcher, SharedState, build_in_memory_collaborators
from src.treasury.modules import TreasuryModule, call_module

AUTHORITY = "authority"


class EchoModule(TreasuryModule):
    """Тестовый модуль: ping возвращает аргументы, fail мутирует и падает."""

    name = "echo"

    def __init__(self, tag="echo"):
        self.tag = tag

    def operations(self):
        return {"ping": self.ping, "fail": self.fail}

    def ping(self, ctx, *args, **kwargs):
        return self.tag, ctx.caller, args, kwargs

    def fail(self, ctx):
        ctx.state.custodian_balance = 999
        ctx.collaborators.reserve_asset.mint(ctx.state.treasury, 5)
        raise KeyError("boom")


class RelayModule(TreasuryModule):
    """Тестовый модуль: relay вызывает другую операцию через dispatch table."""

    name = "relay"

    def operations(self):
        return {"relay": self.relay}

    def relay(self, ctx, operation_id, *args):
        ctx.state.epoch_profit_remaining = 42
        return call_module(ctx, operation_id, *args)


class OtherModule(TreasuryModule):
    name = "other"

    def operations(self):
        return {"fail": self.fail}

    def fail(self, ctx):
        return "other"


# =============================================================================
# FIXTURES
# =============================================================================


@pytest.fixture
def dispatcher(config):
    collaborators = build_in_memory_collaborators(config)
    return Dispatcher(SharedState.from_config(config), collaborators)


# =============================================================================
# ТЕСТЫ: register
# =============================================================================


class TestRegister:
    def test_register_and_dispatch(self, dispatcher):
        module = EchoModule()
        dispatcher.register(AUTHORITY, "ping", module)

        result = dispatcher.dispatch("ping", "bob", 1, 2, flag=True)
        assert result == ("echo", "bob", (1, 2), {"flag": True})
        assert dispatcher.handler_of("ping") is module

    def test_register_requires_authority(self, dispatcher):
        with pytest.raises(AccessDenied) as exc_info:
            dispatcher.register("mallory", "ping", EchoModule())
        assert exc_info.value.required_role == "authority"
        assert dispatcher.operation_ids() == []

    def test_register_none_is_zero_target(self, dispatcher):
        with pytest.raises(ZeroTarget):
            dispatcher.register(AUTHORITY, "ping", None)

    def test_duplicate_registration(self, dispatcher):
        first = EchoModule("first")
        dispatcher.register(AUTHORITY, "ping", first)
        with pytest.raises(AlreadyRegistered):
            dispatcher.register(AUTHORITY, "ping", EchoModule("second"))
        assert dispatcher.handler_of("ping") is first

    def test_register_module_all_operations(self, dispatcher):
        module = EchoModule()
        registered = dispatcher.register_module(AUTHORITY, module)
        assert registered == ["ping", "fail"]
        assert dispatcher.operation_ids() == ["fail", "ping"]

    def test_register_module_all_or_nothing(self, dispatcher):
        """Конфликт на одном id → ни один id модуля не зарегистрирован."""
        other = OtherModule()
        dispatcher.register(AUTHORITY, "fail", other)

        with pytest.raises(AlreadyRegistered):
            dispatcher.register_module(AUTHORITY, EchoModule())

        assert dispatcher.operation_ids() == ["fail"]
        assert dispatcher.handler_of("fail") is other
        assert dispatcher.handler_of("ping") is None


# =============================================================================
# ТЕСТЫ: dispatch
# =============================================================================


class TestDispatch:
    def test_unknown_operation(self, dispatcher):
        with pytest.raises(OperationNotFound) as exc_info:
            dispatcher.dispatch("nope", AUTHORITY)
        assert exc_info.value.operation_id == "nope"

    def test_handler_error_propagates_unchanged(self, dispatcher):
        dispatcher.register_module(AUTHORITY, EchoModule())
        with pytest.raises(KeyError, match="boom"):
            dispatcher.dispatch("fail", AUTHORITY)

    def test_handler_error_rolls_back_state_and_collaborators(self, dispatcher):
        dispatcher.register_module(AUTHORITY, EchoModule())
        reserve = dispatcher.collaborators.reserve_asset

        with pytest.raises(KeyError):
            dispatcher.dispatch("fail", AUTHORITY)

        assert dispatcher.state.custodian_balance == 0
        assert reserve.balance_of(dispatcher.state.treasury) == 0

    def test_rollback_is_logged(self, dispatcher, caplog):
        dispatcher.register_module(AUTHORITY, EchoModule())
        with caplog.at_level(logging.DEBUG, logger="src.treasury.journal"):
            with pytest.raises(KeyError):
                dispatcher.dispatch("fail", AUTHORITY)
        assert "Rolled back" in caplog.text

    def test_dispatch_does_not_check_caller(self, dispatcher):
        """Проверка caller — ответственность операции, не dispatcher."""
        dispatcher.register(AUTHORITY, "ping", EchoModule())
        assert dispatcher.dispatch("ping", "anyone")[1] == "anyone"


# =============================================================================
# ТЕСТЫ: unregister / replace
# =============================================================================


class TestUnregisterReplace:
    def test_unregister(self, dispatcher):
        module = EchoModule()
        dispatcher.register_module(AUTHORITY, module)

        removed = dispatcher.unregister(AUTHORITY, module)

        assert sorted(removed) == ["fail", "ping"]
        with pytest.raises(OperationNotFound):
            dispatcher.dispatch("ping", AUTHORITY)

    def test_unregister_unknown_handler_is_noop(self, dispatcher):
        dispatcher.register(AUTHORITY, "ping", EchoModule())
        assert dispatcher.unregister(AUTHORITY, EchoModule()) == []
        assert dispatcher.operation_ids() == ["ping"]

    def test_unregister_requires_authority(self, dispatcher):
        module = EchoModule()
        dispatcher.register(AUTHORITY, "ping", module)
        with pytest.raises(AccessDenied):
            dispatcher.unregister("mallory", module)
        assert dispatcher.handler_of("ping") is module

    def test_replace_moves_all_ids(self, dispatcher):
        old, new = EchoModule("old"), EchoModule("new")
        dispatcher.register_module(AUTHORITY, old)

        moved = dispatcher.replace(AUTHORITY, old, new)

        assert sorted(moved) == ["fail", "ping"]
        assert dispatcher.dispatch("ping", AUTHORITY)[0] == "new"
        assert dispatcher.handler_of("fail") is new

    def test_replace_leaves_other_handlers(self, dispatcher):
        old, other = EchoModule("old"), OtherModule()
        dispatcher.register(AUTHORITY, "ping", old)
        dispatcher.register(AUTHORITY, "fail", other)

        dispatcher.replace(AUTHORITY, old, EchoModule("new"))

        assert dispatcher.handler_of("fail") is other

    def test_replace_with_none(self, dispatcher):
        old = EchoModule()
        dispatcher.register(AUTHORITY, "ping", old)
        with pytest.raises(ZeroTarget):
            dispatcher.replace(AUTHORITY, old, None)
        assert dispatcher.handler_of("ping") is old

    def test_replace_requires_authority(self, dispatcher):
        old = EchoModule()
        dispatcher.register(AUTHORITY, "ping", old)
        with pytest.raises(AccessDenied):
            dispatcher.replace("mallory", old, EchoModule())

    def test_replace_unknown_handler_is_noop(self, dispatcher):
        assert dispatcher.replace(AUTHORITY, EchoModule(), EchoModule()) == []


# =============================================================================
# ТЕСТЫ: call_module
# =============================================================================


class TestCallModule:
    def test_runs_as_treasury(self, dispatcher):
        dispatcher.register_module(AUTHORITY, EchoModule())
        dispatcher.register_module(AUTHORITY, RelayModule())

        result = dispatcher.dispatch("relay", "bob", "ping", 7)
        assert result == ("echo", dispatcher.state.treasury, (7,), {})
        assert dispatcher.state.epoch_profit_remaining == 42

    def test_unknown_operation(self, dispatcher):
        dispatcher.register_module(AUTHORITY, RelayModule())
        with pytest.raises(OperationNotFound):
            dispatcher.dispatch("relay", "bob", "missing")
        assert dispatcher.state.epoch_profit_remaining == 0

    def test_nested_failure_rolls_back_caller(self, dispatcher):
        dispatcher.register_module(AUTHORITY, EchoModule())
        dispatcher.register_module(AUTHORITY, RelayModule())
        with pytest.raises(KeyError):
            dispatcher.dispatch("relay", "bob", "fail")
        assert dispatcher.state.epoch_profit_remaining == 0
        assert dispatcher.state.custodian_balance == 0
        assert dispatcher.collaborators.reserve_asset.balance_of(dispatcher.state.treasury) == 0


# =============================================================================
# ТЕСТЫ: assembled treasury
# =============================================================================


def test_default_modules_registered(treasury):
    ids = treasury.dispatcher.operation_ids()
    for operation_id in ("send_to_custodian", "recall_from_custodian", "top_up", "slash", "report"):
        assert operation_id in ids
    assert len(ids) == len(set(ids))
