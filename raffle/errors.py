"""
Raffle error taxonomy.

Every precondition violation surfaces as one of these. All of them abort the
triggering operation without effect, except `PayoutTransferFailed`, which is
raised after the round has already been reset.
"""
from __future__ import annotations

from decimal import Decimal
from typing import Any, Dict, Optional


class RaffleError(Exception):
    """Base class for all raffle errors."""

    status_code = 400

    def to_dict(self) -> Dict[str, Any]:
        return {"error": type(self).__name__, "message": str(self)}


class InsufficientFee(RaffleError):
    def __init__(self, paid: Decimal, required: Decimal) -> None:
        self.paid = paid
        self.required = required
        super().__init__(f"Paid {paid} but the entrance fee is {required}")

    def to_dict(self) -> Dict[str, Any]:
        payload = super().to_dict()
        payload.update({"paid": str(self.paid), "required": str(self.required)})
        return payload


class RoundNotOpen(RaffleError):
    status_code = 409

    def __init__(self) -> None:
        super().__init__("Round is calculating a winner; entries are closed")


class UpkeepNotNeeded(RaffleError):
    """Carries the round diagnostics at the time of the rejected close."""

    status_code = 409

    def __init__(self, balance: Decimal, num_players: int, state: int) -> None:
        self.balance = balance
        self.num_players = num_players
        self.state = state
        super().__init__(
            f"Upkeep not needed (balance={balance}, players={num_players}, state={state})"
        )

    def to_dict(self) -> Dict[str, Any]:
        payload = super().to_dict()
        payload.update(
            {
                "balance": str(self.balance),
                "num_players": self.num_players,
                "state": self.state,
            }
        )
        return payload


class UnknownOrExpiredRequest(RaffleError):
    status_code = 409

    def __init__(self, request_id: int, pending_request_id: Optional[int]) -> None:
        self.request_id = request_id
        self.pending_request_id = pending_request_id
        super().__init__(f"Request {request_id} is not the pending randomness request")

    def to_dict(self) -> Dict[str, Any]:
        payload = super().to_dict()
        payload["request_id"] = self.request_id
        return payload


class InvalidRandomWords(RaffleError):
    def __init__(self, request_id: int) -> None:
        self.request_id = request_id
        super().__init__(f"Fulfilment for request {request_id} carried no random words")


class OnlyCoordinatorCanFulfill(RaffleError):
    status_code = 403

    def __init__(self, caller: Optional[str], coordinator: str) -> None:
        self.caller = caller
        self.coordinator = coordinator
        super().__init__(f"Caller {caller!r} is not the VRF coordinator")


class PayoutTransferFailed(RaffleError):
    """The winner was recorded and the round reset, but the prize did not move.

    Needs external remediation; the round cannot be replayed because its
    entrants have already been cleared.
    """

    status_code = 502

    def __init__(self, winner: str, amount: Decimal, request_id: int, reason: str) -> None:
        self.winner = winner
        self.amount = amount
        self.request_id = request_id
        self.reason = reason
        super().__init__(f"Transfer of {amount} to {winner} failed: {reason}")

    def to_dict(self) -> Dict[str, Any]:
        payload = super().to_dict()
        payload.update(
            {
                "winner": self.winner,
                "amount": str(self.amount),
                "request_id": self.request_id,
            }
        )
        return payload
