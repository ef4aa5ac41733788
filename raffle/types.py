from __future__ import annotations

import datetime as dt
from dataclasses import asdict, dataclass, field
from decimal import Decimal
from enum import IntEnum
from typing import Any, ClassVar, Dict, List, Optional, Sequence


class RaffleState(IntEnum):
    OPEN = 0
    CALCULATING = 1


@dataclass
class Round:
    """Authoritative round record, owned by the state machine."""

    last_close_timestamp: int
    state: RaffleState = RaffleState.OPEN
    entrants: List[str] = field(default_factory=list)
    pool_balance: Decimal = Decimal(0)
    pending_request_id: Optional[int] = None
    recent_winner: Optional[str] = None
    round_number: int = 1


@dataclass(frozen=True)
class UpkeepStatus:
    time_passed: bool
    is_open: bool
    has_balance: bool
    has_players: bool

    @property
    def ready(self) -> bool:
        return self.time_passed and self.is_open and self.has_balance and self.has_players


@dataclass(frozen=True)
class RandomWordsRequest:
    """Outbound payload for the VRF coordinator."""

    key_hash: str
    subscription_id: int
    request_confirmations: int
    callback_gas_limit: int
    num_words: int
    native_payment: bool = False


@dataclass(frozen=True)
class OutstandingRequest:
    request_id: int
    round_number: int


@dataclass(frozen=True)
class RoundSnapshot:
    round_number: int
    state: RaffleState
    entrants: Sequence[str]
    pool_balance: Decimal
    last_close_timestamp: int
    pending_request_id: Optional[int]
    recent_winner: Optional[str]


# --------------------------------------------------------------------- #
# Observable events
# --------------------------------------------------------------------- #


@dataclass(frozen=True)
class RaffleEventBase:
    name: ClassVar[str] = "RaffleEvent"

    round_number: int

    def payload(self) -> Dict[str, Any]:
        data = asdict(self)
        data.pop("round_number", None)
        return {k: str(v) if isinstance(v, Decimal) else v for k, v in data.items()}


@dataclass(frozen=True)
class EntrantAdmitted(RaffleEventBase):
    name: ClassVar[str] = "RaffleEnter"

    player: str
    amount: Decimal


@dataclass(frozen=True)
class RequestedRaffleWinner(RaffleEventBase):
    name: ClassVar[str] = "RequestedRaffleWinner"

    request_id: int


@dataclass(frozen=True)
class WinnerPicked(RaffleEventBase):
    name: ClassVar[str] = "WinnerPicked"

    winner: str
    amount: Decimal
    request_id: int
    winner_index: int


@dataclass(frozen=True)
class PayoutFailed(RaffleEventBase):
    name: ClassVar[str] = "PayoutFailed"

    winner: str
    amount: Decimal
    request_id: int
    reason: str


def utc_from_timestamp(ts: int) -> dt.datetime:
    return dt.datetime.fromtimestamp(ts, tz=dt.timezone.utc)
