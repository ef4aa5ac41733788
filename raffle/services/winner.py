from __future__ import annotations

import logging
from typing import Callable, Optional, Sequence

from ..errors import InvalidRandomWords, PayoutTransferFailed, UnknownOrExpiredRequest
from ..types import PayoutFailed, WinnerPicked
from .events import EventBus
from .payouts import PayoutGateway
from .state_machine import RoundStateMachine

logger = logging.getLogger("raffle.winner")


def pick_winner_index(random_word: int, num_entrants: int) -> int:
    if num_entrants <= 0:
        raise ValueError("Cannot pick a winner from an empty round")
    return int(random_word) % num_entrants


class WinnerResolver:
    """Consumes an oracle response and settles the round.

    Bookkeeping is finalised before any value moves. A failed transfer leaves
    the reset round in place and surfaces `PayoutTransferFailed`.
    """

    def __init__(
        self,
        machine: RoundStateMachine,
        payouts: PayoutGateway,
        events: EventBus,
        clock: Callable[[], float],
    ) -> None:
        self._machine = machine
        self._payouts = payouts
        self._events = events
        self._clock = clock

    def resolve(self, request_id: int, random_words: Sequence[int]) -> WinnerPicked:
        current = self._machine.round
        pending: Optional[int] = current.pending_request_id
        if pending is None or int(request_id) != pending:
            logger.warning("Rejected fulfilment for request %s (pending=%s)", request_id, pending)
            raise UnknownOrExpiredRequest(int(request_id), pending)
        if not random_words:
            raise InvalidRandomWords(int(request_id))

        round_number = current.round_number
        winner_index = pick_winner_index(random_words[0], len(current.entrants))
        winner = current.entrants[winner_index]

        _, pot = self._machine.reopen(winner, int(self._clock()))

        picked = WinnerPicked(
            round_number=round_number,
            winner=winner,
            amount=pot,
            request_id=int(request_id),
            winner_index=winner_index,
        )
        self._events.emit(picked)
        logger.info("Round %s winner %s (index %s), prize %s", round_number, winner, winner_index, pot)

        try:
            self._payouts.transfer(winner, pot)
        except Exception as exc:
            logger.error("Payout of %s to %s failed: %s", pot, winner, exc)
            self._events.emit(
                PayoutFailed(
                    round_number=round_number,
                    winner=winner,
                    amount=pot,
                    request_id=int(request_id),
                    reason=str(exc),
                )
            )
            raise PayoutTransferFailed(winner, pot, int(request_id), str(exc)) from exc
        return picked
