from __future__ import annotations

from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator


class EnterRaffleRequest(BaseModel):
    player: str = Field(..., min_length=1, description="Identity of the entrant.")
    amount: Decimal = Field(..., description="Amount paid, in the payout currency.")

    @field_validator("amount")
    @classmethod
    def validate_amount(cls, value: Decimal) -> Decimal:
        if not value.is_finite():
            raise ValueError("Amount must be a finite number.")
        return value


class EnterRaffleResponse(BaseModel):
    round_number: int
    player: str
    amount: str
    number_of_players: int
    pool_balance: str


class FulfillRandomWordsRequest(BaseModel):
    request_id: int
    random_words: List[int] = Field(default_factory=list)


class MockFulfillRequest(BaseModel):
    request_id: int
    random_words: Optional[List[int]] = None


class UpkeepResponse(BaseModel):
    upkeep_needed: bool
    time_passed: bool
    is_open: bool
    has_balance: bool
    has_players: bool
    state: str
    pending_request_id: Optional[int] = None


class PerformUpkeepResponse(BaseModel):
    request_id: int
    round_number: int
    state: str


class WinnerPickedResponse(BaseModel):
    round_number: int
    winner: str
    amount: str
    request_id: int
    winner_index: int


class RaffleStateResponse(BaseModel):
    round_number: int
    state: str
    entrance_fee: str
    interval: int
    number_of_players: int
    pool_balance: str
    last_close_timestamp: int
    last_close_at: str
    recent_winner: Optional[str] = None
    pending_request_id: Optional[int] = None
    num_words: int
    request_confirmations: int
