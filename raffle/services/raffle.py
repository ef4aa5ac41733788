from __future__ import annotations

import logging
import threading
import time
from decimal import Decimal
from typing import Callable, Optional, Sequence

from ..config import RaffleSettings, VRFSettings
from ..errors import OnlyCoordinatorCanFulfill, UpkeepNotNeeded
from ..types import (
    EntrantAdmitted,
    OutstandingRequest,
    RaffleState,
    RequestedRaffleWinner,
    RoundSnapshot,
    UpkeepStatus,
    WinnerPicked,
)
from .entry_pool import EntryPool
from .events import EventBus
from .payouts import PayoutGateway
from .randomness import NUM_WORDS, RandomnessCoordinator, RandomnessRequester
from .state_machine import RoundStateMachine
from .upkeep import UpkeepEvaluator
from .winner import WinnerResolver

logger = logging.getLogger("raffle")


class Raffle:
    """External interface of the raffle.

    Each mutating call holds one lock for its whole duration, so operations on
    the round never interleave. `perform_close` and `raw_fulfill_random_words`
    are the two halves of the asynchronous draw.
    """

    def __init__(
        self,
        settings: RaffleSettings,
        vrf: VRFSettings,
        coordinator: RandomnessCoordinator,
        payouts: PayoutGateway,
        events: Optional[EventBus] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._coordinator = coordinator
        self._lock = threading.Lock()
        self.events = events or EventBus()

        self._machine = RoundStateMachine(created_at=int(clock()))
        self._pool = EntryPool(self._machine, settings.entrance_fee)
        self._upkeep = UpkeepEvaluator(settings.interval_seconds, clock)
        self._requester = RandomnessRequester(coordinator, vrf)
        self._resolver = WinnerResolver(self._machine, payouts, self.events, clock)

    # ------------------------------------------------------------------ #
    # Operations
    # ------------------------------------------------------------------ #

    def enter(self, player: str, amount: Decimal) -> EntrantAdmitted:
        with self._lock:
            admitted = self._pool.admit(player, amount)
            self.events.emit(admitted)
        return admitted

    def check_upkeep(self) -> UpkeepStatus:
        return self._upkeep.evaluate(self._machine.round)

    def check_ready(self) -> bool:
        return self.check_upkeep().ready

    def perform_close(self) -> OutstandingRequest:
        with self._lock:
            current = self._machine.round
            status = self._upkeep.evaluate(current)
            if not status.ready:
                logger.warning("Upkeep not needed: %s", status)
                raise UpkeepNotNeeded(current.pool_balance, len(current.entrants), int(current.state))
            outstanding = self._requester.request(current.round_number)
            self._machine.begin_calculating(outstanding.request_id)
            event = RequestedRaffleWinner(
                round_number=outstanding.round_number, request_id=outstanding.request_id
            )
            self.events.emit(event)
        return outstanding

    def raw_fulfill_random_words(
        self, caller: Optional[str], request_id: int, random_words: Sequence[int]
    ) -> WinnerPicked:
        coordinator = self._requester.coordinator_address
        if caller != coordinator:
            logger.warning("Rejected fulfilment from %r", caller)
            raise OnlyCoordinatorCanFulfill(caller, coordinator)
        with self._lock:
            return self._resolver.resolve(request_id, random_words)

    # ------------------------------------------------------------------ #
    # Read-only accessors
    # ------------------------------------------------------------------ #

    @property
    def coordinator(self) -> RandomnessCoordinator:
        return self._coordinator

    @property
    def state(self) -> RaffleState:
        return self._machine.state

    def get_player(self, index: int) -> str:
        entrants = self._machine.round.entrants
        if index < 0 or index >= len(entrants):
            raise IndexError(f"No player at index {index}")
        return entrants[index]

    @property
    def number_of_players(self) -> int:
        return len(self._machine.round.entrants)

    @property
    def pool_balance(self) -> Decimal:
        return self._machine.round.pool_balance

    @property
    def last_close_timestamp(self) -> int:
        return self._machine.round.last_close_timestamp

    @property
    def recent_winner(self) -> Optional[str]:
        return self._machine.round.recent_winner

    @property
    def pending_request_id(self) -> Optional[int]:
        return self._machine.round.pending_request_id

    @property
    def entrance_fee(self) -> Decimal:
        return self._pool.entrance_fee

    @property
    def interval(self) -> int:
        return self._upkeep.interval

    @property
    def num_words(self) -> int:
        return NUM_WORDS

    @property
    def request_confirmations(self) -> int:
        return self._requester.request_confirmations

    def snapshot(self) -> RoundSnapshot:
        return self._machine.snapshot()
