from __future__ import annotations

from typing import Callable

from ..types import RaffleState, Round, UpkeepStatus


class UpkeepEvaluator:
    """Decides whether the current round may be closed. Never mutates."""

    def __init__(self, interval_seconds: int, clock: Callable[[], float]) -> None:
        self._interval = int(interval_seconds)
        self._clock = clock

    @property
    def interval(self) -> int:
        return self._interval

    def evaluate(self, current: Round) -> UpkeepStatus:
        now = int(self._clock())
        return UpkeepStatus(
            time_passed=(now - current.last_close_timestamp) >= self._interval,
            is_open=current.state == RaffleState.OPEN,
            has_balance=current.pool_balance > 0,
            has_players=len(current.entrants) > 0,
        )
