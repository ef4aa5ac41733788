from __future__ import annotations

import logging
from decimal import Decimal
from typing import List, Tuple

from ..errors import RoundNotOpen, UpkeepNotNeeded
from ..types import RaffleState, Round, RoundSnapshot

logger = logging.getLogger("raffle.state")


class RoundStateMachine:
    """Owns the round and the only two valid transitions.

    OPEN -> CALCULATING via `begin_calculating`, CALCULATING -> OPEN via
    `reopen`. The pending request id is the single correlation record and is
    cleared together with the OPEN transition.
    """

    def __init__(self, created_at: int) -> None:
        self._round = Round(last_close_timestamp=int(created_at))

    @property
    def round(self) -> Round:
        return self._round

    @property
    def state(self) -> RaffleState:
        return self._round.state

    def require_open(self) -> None:
        if self._round.state != RaffleState.OPEN:
            raise RoundNotOpen()

    def begin_calculating(self, request_id: int) -> None:
        current = self._round
        if current.state != RaffleState.OPEN:
            raise UpkeepNotNeeded(current.pool_balance, len(current.entrants), int(current.state))
        current.state = RaffleState.CALCULATING
        current.pending_request_id = int(request_id)
        logger.info(
            "Round %s calculating; pending request %s", current.round_number, request_id
        )

    def reopen(self, winner: str, closed_at: int) -> Tuple[List[str], Decimal]:
        """Record the winner and start the next round.

        Returns the entrants and the pool balance of the round just closed.
        """
        current = self._round
        if current.state != RaffleState.CALCULATING:
            raise RuntimeError("reopen called while the round is not calculating")

        current.recent_winner = winner
        current.state = RaffleState.OPEN
        current.pending_request_id = None

        entrants, pot = current.entrants, current.pool_balance
        current.entrants = []
        current.pool_balance = Decimal(0)
        current.last_close_timestamp = int(closed_at)
        current.round_number += 1
        logger.info("Round reset; round %s open", current.round_number)
        return entrants, pot

    def snapshot(self) -> RoundSnapshot:
        current = self._round
        return RoundSnapshot(
            round_number=current.round_number,
            state=current.state,
            entrants=tuple(current.entrants),
            pool_balance=current.pool_balance,
            last_close_timestamp=current.last_close_timestamp,
            pending_request_id=current.pending_request_id,
            recent_winner=current.recent_winner,
        )
