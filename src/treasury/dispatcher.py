"""Dispatcher — таблица маршрутизации operation id → handler-модуль.

Инварианты:
- каждый operation id привязан максимум к одному handler
- register/unregister/replace доступны только authority (одна проверка на
  границе registry, модули её не дублируют)
- dispatch не хранит состояния между вызовами: только lookup + исполнение
  handler внутри Journal.atomic()
- ошибки handler пробрасываются без изменений
"""

import logging
from typing import Any, Optional

from src.core.errors import AccessDenied, AlreadyRegistered, OperationNotFound, ZeroTarget
from src.treasury.collaborators import Collaborators
from src.treasury.journal import Journal
from src.treasury.modules.base import CallContext, TreasuryModule
from src.treasury.state import SharedState

logger = logging.getLogger(__name__)


class Dispatcher:
    """Маршрутизатор операций treasury."""

    def __init__(
        self,
        state: SharedState,
        collaborators: Collaborators,
        journal: Optional[Journal] = None,
    ):
        self.state = state
        self.collaborators = collaborators
        self._journal = journal

    @property
    def journal(self) -> Journal:
        # Collaborators могут добавляться после init (новый custodian)
        if self._journal is not None:
            return self._journal
        return Journal([self.state, *self.collaborators.participants()])

    # =========================================================================
    # REGISTRY
    # =========================================================================

    def register(self, caller: str, operation_id: str, handler: TreasuryModule) -> None:
        """
        Привязка operation id к handler.

        Raises:
            AccessDenied: caller не authority
            ZeroTarget: handler is None
            AlreadyRegistered: operation id уже занят
        """
        self._require_authority(caller)
        with self.journal.atomic():
            self._register_one(operation_id, handler)
        logger.info("Registered %s -> %r", operation_id, handler)

    def register_module(self, caller: str, handler: TreasuryModule) -> list[str]:
        """Регистрация всех операций модуля (all-or-nothing)."""
        self._require_authority(caller)
        if handler is None:
            raise ZeroTarget("handler must not be None")
        operation_ids = list(handler.operation_ids())
        with self.journal.atomic():
            for operation_id in operation_ids:
                self._register_one(operation_id, handler)
        logger.info("Registered module %r with %d operations", handler, len(operation_ids))
        return operation_ids

    def unregister(self, caller: str, handler: TreasuryModule) -> list[str]:
        """Снятие всех operation id, привязанных к handler."""
        self._require_authority(caller)
        table = self.state.dispatch_table
        removed = [op_id for op_id, h in table.items() if h is handler]
        with self.journal.atomic():
            for operation_id in removed:
                del table[operation_id]
        logger.info("Unregistered %r (%d operations)", handler, len(removed))
        return removed

    def replace(
        self, caller: str, old_handler: TreasuryModule, new_handler: TreasuryModule
    ) -> list[str]:
        """
        Перепривязка всех operation id с old_handler на new_handler.

        Raises:
            AccessDenied: caller не authority
            ZeroTarget: new_handler is None
        """
        self._require_authority(caller)
        if new_handler is None:
            raise ZeroTarget("replacement handler must not be None")
        table = self.state.dispatch_table
        moved = [op_id for op_id, h in table.items() if h is old_handler]
        with self.journal.atomic():
            for operation_id in moved:
                table[operation_id] = new_handler
        logger.info("Replaced %r with %r (%d operations)", old_handler, new_handler, len(moved))
        return moved

    # =========================================================================
    # DISPATCH
    # =========================================================================

    def dispatch(self, operation_id: str, caller: str, *args: Any, **kwargs: Any) -> Any:
        """
        Исполнение операции зарегистрированным handler.

        Returns:
            Результат handler без изменений

        Raises:
            OperationNotFound: operation id не зарегистрирован
        """
        handler = self.state.dispatch_table.get(operation_id)
        if handler is None:
            raise OperationNotFound(operation_id)

        logger.debug("Dispatch %s from %s to %r", operation_id, caller, handler)
        ctx = CallContext(caller=caller, state=self.state, collaborators=self.collaborators)
        with self.journal.atomic():
            return handler.execute(operation_id, ctx, *args, **kwargs)

    # =========================================================================
    # VIEWS
    # =========================================================================

    def handler_of(self, operation_id: str) -> Optional[TreasuryModule]:
        return self.state.dispatch_table.get(operation_id)

    def operation_ids(self) -> list[str]:
        return sorted(self.state.dispatch_table)

    # =========================================================================
    # INTERNAL
    # =========================================================================

    def _require_authority(self, caller: str) -> None:
        if caller != self.state.authority:
            raise AccessDenied(caller, "authority")

    def _register_one(self, operation_id: str, handler: TreasuryModule) -> None:
        if handler is None:
            raise ZeroTarget("handler must not be None")
        if operation_id in self.state.dispatch_table:
            raise AlreadyRegistered(operation_id)
        self.state.dispatch_table[operation_id] = handler
