from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Optional


@dataclass(frozen=True)
class UpkeepSnapshot:
    upkeep_needed: bool
    state: str
    time_passed: bool
    is_open: bool
    has_balance: bool
    has_players: bool
    pending_request_id: Optional[int] = None

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "UpkeepSnapshot":
        pending = payload.get("pending_request_id")
        return cls(
            upkeep_needed=bool(payload["upkeep_needed"]),
            state=str(payload["state"]),
            time_passed=bool(payload.get("time_passed", False)),
            is_open=bool(payload.get("is_open", False)),
            has_balance=bool(payload.get("has_balance", False)),
            has_players=bool(payload.get("has_players", False)),
            pending_request_id=int(pending) if pending is not None else None,
        )


@dataclass(frozen=True)
class PerformResult:
    request_id: int
    round_number: int
