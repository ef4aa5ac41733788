from __future__ import annotations

import asyncio
import json
import logging
import pathlib
import time
from dataclasses import dataclass
from typing import Callable, Optional, Protocol

from .config import KeeperSettings
from .raffle_client import UpkeepRejected
from .types import PerformResult, UpkeepSnapshot


class RaffleClientProtocol(Protocol):
    async def check_upkeep(self) -> UpkeepSnapshot:
        ...

    async def perform_upkeep(self) -> PerformResult:
        ...

    async def close(self) -> None:
        ...


@dataclass
class SchedulerResult:
    request_id: int
    round_number: int
    performed_at: int


class KeeperStateStore:
    """Remembers the last request this keeper triggered and when."""

    def __init__(self, path: str) -> None:
        self._path = pathlib.Path(path)

    def load(self) -> Optional[SchedulerResult]:
        if not self._path.exists():
            return None
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
            return SchedulerResult(
                request_id=int(data["last_request_id"]),
                round_number=int(data["round_number"]),
                performed_at=int(data["performed_at"]),
            )
        except (json.JSONDecodeError, KeyError, TypeError, ValueError):
            return None

    def save(self, result: SchedulerResult) -> None:
        payload = {
            "last_request_id": result.request_id,
            "round_number": result.round_number,
            "performed_at": result.performed_at,
        }
        self._path.write_text(json.dumps(payload), encoding="utf-8")


class UpkeepScheduler:
    def __init__(
        self,
        settings: KeeperSettings,
        client: RaffleClientProtocol,
        logger: Optional[logging.Logger] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._settings = settings
        self._client = client
        self._state = KeeperStateStore(settings.state_file)
        self._last = self._state.load()
        self._clock = clock
        self._logger = logger or logging.getLogger("raffle.keeper")

    @property
    def last_result(self) -> Optional[SchedulerResult]:
        return self._last

    async def run_forever(self) -> None:
        interval = self._settings.poll_interval_seconds
        self._logger.info("Keeper loop started; poll interval=%s", interval)
        try:
            while True:
                try:
                    await self._attempt_upkeep()
                except Exception as exc:
                    self._logger.exception("Keeper iteration failed: %s", exc)
                await asyncio.sleep(interval)
        finally:
            await self._client.close()

    async def run_once(self) -> Optional[SchedulerResult]:
        try:
            return await self._attempt_upkeep()
        finally:
            await self._client.close()

    async def _attempt_upkeep(self) -> Optional[SchedulerResult]:
        snapshot = await self._client.check_upkeep()

        if not snapshot.upkeep_needed:
            if snapshot.state == "CALCULATING":
                self._warn_if_stuck(snapshot)
            else:
                self._logger.debug(
                    "Upkeep not needed (time_passed=%s, balance=%s, players=%s)",
                    snapshot.time_passed,
                    snapshot.has_balance,
                    snapshot.has_players,
                )
            return None

        try:
            performed = await self._client.perform_upkeep()
        except UpkeepRejected as exc:
            self._logger.info("Upkeep rejected by raffle service: %s", exc)
            return None

        result = SchedulerResult(
            request_id=performed.request_id,
            round_number=performed.round_number,
            performed_at=int(self._clock()),
        )
        self._logger.info(
            "Closed round %s; randomness request %s", result.round_number, result.request_id
        )
        self._last = result
        self._state.save(result)
        return result

    def _warn_if_stuck(self, snapshot: UpkeepSnapshot) -> None:
        last = self._last
        if last is None or last.request_id != snapshot.pending_request_id:
            self._logger.info("Round calculating; request %s", snapshot.pending_request_id)
            return
        waited = int(self._clock()) - last.performed_at
        if waited >= self._settings.stuck_after_seconds:
            self._logger.warning(
                "Request %s unanswered for %ss; the round stays closed until the oracle calls back",
                last.request_id,
                waited,
            )
