"""Journal — атомарность операций (all-or-nothing).

Каждая операция выполняется внутри Journal.atomic(): перед исполнением
снимаются checkpoints shared state и всех journaled collaborators; при
любом исключении все checkpoints восстанавливаются, исключение
пробрасывается без изменений.

Вложенные atomic() (реентрантный dispatch из collaborator) допустимы:
внутренний блок откатывает только свои изменения.
"""

import logging
from contextlib import contextmanager
from typing import Iterable, Iterator

from src.treasury.collaborators import Journaled

logger = logging.getLogger(__name__)


class Journal:
    """Набор участников, откатываемых вместе."""

    def __init__(self, participants: Iterable[Journaled] = ()):
        self._participants: list[Journaled] = list(participants)
        self._depth = 0

    def add(self, participant: Journaled) -> None:
        self._participants.append(participant)

    @property
    def depth(self) -> int:
        """Текущая глубина вложенности atomic()."""
        return self._depth

    @contextmanager
    def atomic(self) -> Iterator[None]:
        checkpoints = [(p, p.snapshot()) for p in self._participants]
        self._depth += 1
        try:
            yield
        except Exception as e:
            for participant, checkpoint in reversed(checkpoints):
                participant.restore(checkpoint)
            logger.debug(
                "Rolled back %d participants at depth %d after %s",
                len(checkpoints),
                self._depth,
                type(e).__name__,
            )
            raise
        finally:
            self._depth -= 1
