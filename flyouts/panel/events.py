"""Change notification channel for an open panel."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, List

logger = logging.getLogger(__name__)

__all__ = ["FieldChange", "ChangeChannel"]


@dataclass(frozen=True)
class FieldChange:
    """A control changed: ``name`` is the field name without a ``[]`` suffix."""

    name: str
    value: Any = None


Listener = Callable[[FieldChange], None]


class ChangeChannel:
    """Synchronous publish/subscribe channel.

    Listeners run in subscription order and each publish completes before
    the next one starts, matching the browser's serialized event dispatch.
    """

    def __init__(self) -> None:
        self._listeners: List[Listener] = []

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Add a listener; returns a function that removes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def publish(self, change: FieldChange) -> None:
        logger.debug("Field '%s' changed", change.name)
        for listener in list(self._listeners):
            listener(change)

    @property
    def subscriber_count(self) -> int:
        return len(self._listeners)
