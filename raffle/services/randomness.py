from __future__ import annotations

import logging
from typing import Protocol

from ..config import VRFSettings
from ..types import OutstandingRequest, RandomWordsRequest

logger = logging.getLogger("raffle.randomness")

# One draw is enough to index the entrant list.
NUM_WORDS = 1


class RandomnessCoordinator(Protocol):
    @property
    def address(self) -> str:
        ...

    def request_random_words(self, request: RandomWordsRequest) -> int:
        ...


class RandomnessRequester:
    """Issues the single outbound randomness request for a closing round.

    Fire-and-forget: no retry and no timeout are handled here.
    """

    def __init__(
        self,
        coordinator: RandomnessCoordinator,
        settings: VRFSettings,
    ) -> None:
        self._coordinator = coordinator
        self._settings = settings

    @property
    def coordinator_address(self) -> str:
        return self._coordinator.address

    @property
    def request_confirmations(self) -> int:
        return self._settings.request_confirmations

    def build_request(self) -> RandomWordsRequest:
        settings = self._settings
        return RandomWordsRequest(
            key_hash=settings.key_hash,
            subscription_id=settings.subscription_id,
            request_confirmations=settings.request_confirmations,
            callback_gas_limit=settings.callback_gas_limit,
            num_words=NUM_WORDS,
            native_payment=settings.native_payment,
        )

    def request(self, round_number: int) -> OutstandingRequest:
        request_id = int(self._coordinator.request_random_words(self.build_request()))
        logger.info("Requested randomness for round %s: request %s", round_number, request_id)
        return OutstandingRequest(
            request_id=request_id,
            round_number=round_number,
        )
