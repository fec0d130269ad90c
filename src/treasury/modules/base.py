"""Базовые типы модулей treasury.

- CallContext: caller + shared state + collaborators для одной операции
- TreasuryModule: handler, которому dispatcher направляет operation id
- require_*: проверки доступа (до любой мутации состояния)
- call_module: межмодульный вызов через dispatch table
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, replace
from typing import Any, Callable, Mapping

from src.core.errors import AccessDenied, OperationNotFound
from src.treasury.collaborators import Collaborators
from src.treasury.state import SharedState


@dataclass(frozen=True)
class CallContext:
    """Контекст исполнения одной операции."""

    caller: str
    state: SharedState
    collaborators: Collaborators

    @property
    def parameters(self):
        return self.state.parameters

    def as_caller(self, caller: str) -> "CallContext":
        return replace(self, caller=caller)


def require_authority(ctx: CallContext) -> None:
    if ctx.caller != ctx.state.authority:
        raise AccessDenied(ctx.caller, "authority")


def require_custodian(ctx: CallContext) -> None:
    if ctx.caller != ctx.state.custodian:
        raise AccessDenied(ctx.caller, "custodian")


def require_treasury(ctx: CallContext) -> None:
    if ctx.caller != ctx.state.treasury:
        raise AccessDenied(ctx.caller, "treasury")


class TreasuryModule(ABC):
    """
    Handler-модуль: набор операций над shared state.

    Модуль не хранит собственного состояния: всё, что он читает и пишет,
    лежит в CallContext. Поэтому один экземпляр можно зарегистрировать,
    снять и заменить без миграции данных.
    """

    name: str = "module"

    @abstractmethod
    def operations(self) -> Mapping[str, Callable[..., Any]]:
        """operation id → bound method (ctx, *args, **kwargs)."""

    def operation_ids(self) -> tuple[str, ...]:
        return tuple(self.operations())

    def execute(self, operation_id: str, ctx: CallContext, *args: Any, **kwargs: Any) -> Any:
        operation = self.operations().get(operation_id)
        if operation is None:
            raise OperationNotFound(operation_id)
        return operation(ctx, *args, **kwargs)

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name}>"


def call_module(ctx: CallContext, operation_id: str, *args: Any) -> Any:
    """
    Вызов операции другого модуля через dispatch table от имени treasury.

    Исполняется внутри текущей atomic() операции: отдельного journal нет,
    ошибка откатывает вызывающую операцию целиком.

    Raises:
        OperationNotFound: operation id не зарегистрирован
    """
    handler = ctx.state.dispatch_table.get(operation_id)
    if handler is None:
        raise OperationNotFound(operation_id)
    return handler.execute(operation_id, ctx.as_caller(ctx.state.treasury), *args)
