from __future__ import annotations

import asyncio
from typing import Any, Mapping, Optional

import requests

from .config import KeeperSettings
from .types import PerformResult, UpkeepSnapshot


class UpkeepRejected(RuntimeError):
    """The service refused `perform_close`; another caller got there first."""

    def __init__(self, payload: Mapping[str, Any]) -> None:
        self.payload = dict(payload)
        super().__init__(payload.get("message", "upkeep not needed"))


class RaffleClient:
    """HTTP wrapper around the raffle service upkeep endpoints."""

    def __init__(self, settings: KeeperSettings, session: Optional[requests.Session] = None) -> None:
        self._settings = settings
        self._session = session or requests.Session()

    async def check_upkeep(self) -> UpkeepSnapshot:
        return await asyncio.to_thread(self._sync_check_upkeep)

    async def perform_upkeep(self) -> PerformResult:
        return await asyncio.to_thread(self._sync_perform_upkeep)

    async def close(self) -> None:
        await asyncio.to_thread(self._session.close)

    def _url(self, path: str) -> str:
        return f"{self._settings.raffle_url}{path}"

    def _sync_check_upkeep(self) -> UpkeepSnapshot:
        resp = self._session.get(self._url("/upkeep"), timeout=self._settings.timeout_seconds)
        resp.raise_for_status()
        return UpkeepSnapshot.from_payload(resp.json())

    def _sync_perform_upkeep(self) -> PerformResult:
        resp = self._session.post(self._url("/upkeep/perform"), timeout=self._settings.timeout_seconds)
        if resp.status_code == 409:
            raise UpkeepRejected(resp.json())
        resp.raise_for_status()
        data = resp.json()
        return PerformResult(request_id=int(data["request_id"]), round_number=int(data["round_number"]))
