from __future__ import annotations

import logging
from typing import Callable, List

from ..types import RaffleEventBase

logger = logging.getLogger("raffle.events")

Subscriber = Callable[[RaffleEventBase], None]


class EventBus:
    """Fan-out of raffle events to indexers.

    Delivery is best effort: a failing subscriber is logged and does not undo
    the operation that emitted the event.
    """

    def __init__(self) -> None:
        self._subscribers: List[Subscriber] = []

    def subscribe(self, subscriber: Subscriber) -> None:
        self._subscribers.append(subscriber)

    def emit(self, event: RaffleEventBase) -> None:
        for subscriber in list(self._subscribers):
            try:
                subscriber(event)
            except Exception as exc:
                logger.exception("Event subscriber failed for %s: %s", event.name, exc)
