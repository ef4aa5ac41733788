from __future__ import annotations

import hashlib
import logging
from dataclasses import asdict
from typing import Any, Dict, List, Mapping, Optional, Protocol, Sequence

import requests

from ..config import VRFSettings
from ..types import RandomWordsRequest

logger = logging.getLogger("raffle.coordinator")


class RandomnessConsumer(Protocol):
    def raw_fulfill_random_words(
        self, caller: Optional[str], request_id: int, random_words: Sequence[int]
    ) -> Any:
        ...


def derive_random_words(request_id: int, num_words: int) -> List[int]:
    """Deterministic words for a request id, one 256-bit value per index."""
    words = []
    for index in range(num_words):
        digest = hashlib.sha256(f"{request_id}:{index}".encode("utf-8")).hexdigest()
        words.append(int(digest, 16))
    return words


class VRFCoordinatorMock:
    """In-process coordinator for local networks and tests.

    Requests stay pending until `fulfill_random_words` is called explicitly.
    """

    def __init__(self, address: str = "vrf-coordinator-mock") -> None:
        self._address = address
        self._next_request_id = 1
        self._pending: Dict[int, RandomWordsRequest] = {}

    @property
    def address(self) -> str:
        return self._address

    @property
    def last_request_id(self) -> Optional[int]:
        if self._next_request_id == 1:
            return None
        return self._next_request_id - 1

    def pending_requests(self) -> Dict[int, RandomWordsRequest]:
        return dict(self._pending)

    def request_random_words(self, request: RandomWordsRequest) -> int:
        if request.num_words < 1:
            raise ValueError("num_words must be at least 1")
        request_id = self._next_request_id
        self._next_request_id += 1
        self._pending[request_id] = request
        logger.debug("Mock coordinator accepted request %s", request_id)
        return request_id

    def fulfill_random_words(
        self,
        request_id: int,
        consumer: RandomnessConsumer,
        random_words: Optional[Sequence[int]] = None,
    ) -> Any:
        request = self._pending.pop(request_id, None)
        if request is None:
            raise ValueError(f"nonexistent request {request_id}")
        words = list(random_words) if random_words is not None else derive_random_words(
            request_id, request.num_words
        )
        return consumer.raw_fulfill_random_words(self._address, request_id, words)


class HttpVRFCoordinator:
    """Forwards randomness requests to a remote oracle over HTTP.

    The oracle answers with a request id and later posts the fulfilment to
    the configured callback URL.
    """

    def __init__(self, settings: VRFSettings) -> None:
        if not settings.coordinator_url:
            raise RuntimeError("VRF__COORDINATOR_URL is not configured.")
        self._settings = settings

    @property
    def address(self) -> str:
        return self._settings.coordinator_address

    def request_random_words(self, request: RandomWordsRequest) -> int:
        body = asdict(request)
        body["callback_url"] = self._settings.callback_url
        payload = self._post_json(self._settings.coordinator_url, body, self._settings.timeout_seconds)
        try:
            return int(payload["request_id"])
        except (KeyError, TypeError, ValueError) as exc:
            raise ValueError("Coordinator response missing a valid request_id") from exc

    @staticmethod
    def _post_json(url: str, body: Mapping[str, Any], timeout_seconds: int) -> Mapping[str, Any]:
        resp = requests.post(url, json=body, timeout=timeout_seconds)
        resp.raise_for_status()
        data = resp.json()
        if not isinstance(data, Mapping):
            raise ValueError("Coordinator returned non-object payload")
        return data


def build_coordinator(settings: VRFSettings):
    if settings.coordinator_url:
        return HttpVRFCoordinator(settings)
    return VRFCoordinatorMock(address=settings.coordinator_address)
